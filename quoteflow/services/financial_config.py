"""Typed sections of a quote's financial configuration."""
from dataclasses import dataclass, asdict, fields
from typing import Optional, Any, Dict

from quoteflow.utils.number_format import parse_amount


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


def _rate(value, field) -> float:
    return float(parse_amount(value, field=field))


@dataclass
class VatConfig:
    rate: float = 21.0
    display: bool = True
    is_inclusive: bool = False

    @classmethod
    def from_dict(cls, data):
        cfg = cls(**_known(cls, data))
        cfg.rate = _rate(cfg.rate, 'vat_config.rate')
        return cfg


@dataclass
class AdvanceConfig:
    enabled: bool = False
    percentage: float = 0.0
    amount: float = 0.0
    due_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        cfg = cls(**_known(cls, data))
        cfg.percentage = _rate(cfg.percentage, 'advance_config.percentage')
        cfg.amount = _rate(cfg.amount, 'advance_config.amount')
        return cfg


@dataclass
class DiscountConfig:
    enabled: bool = False
    type: str = 'percentage'  # percentage, amount
    rate: float = 0.0
    amount: float = 0.0

    @classmethod
    def from_dict(cls, data):
        cfg = cls(**_known(cls, data))
        cfg.rate = _rate(cfg.rate, 'discount_config.rate')
        cfg.amount = _rate(cfg.amount, 'discount_config.amount')
        if cfg.type not in ('percentage', 'amount'):
            cfg.type = 'percentage'
        cfg.enabled = bool(cfg.enabled or cfg.rate > 0 or cfg.amount > 0)
        return cfg


@dataclass
class PaymentTerms:
    terms: str = 'Paiement à 30 jours'
    days: int = 30
    method: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        # Older clients send a bare string
        if isinstance(data, str):
            return cls(terms=data)
        cfg = cls(**_known(cls, data))
        cfg.days = int(cfg.days or 0)
        return cfg


@dataclass
class MarketingBanner:
    enabled: bool = False
    message: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        return cls(**_known(cls, data))


@dataclass
class FinancialConfig:
    vat_config: VatConfig
    advance_config: AdvanceConfig
    discount_config: DiscountConfig
    payment_terms: PaymentTerms
    marketing_banner: MarketingBanner

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FinancialConfig':
        """Build from the JSON sent by the quote form. Unknown keys are dropped."""
        data = data or {}
        return cls(
            vat_config=VatConfig.from_dict(data.get('vat_config') or {}),
            advance_config=AdvanceConfig.from_dict(data.get('advance_config') or {}),
            discount_config=DiscountConfig.from_dict(data.get('discount_config') or {}),
            payment_terms=PaymentTerms.from_dict(data.get('payment_terms') or {}),
            marketing_banner=MarketingBanner.from_dict(data.get('marketing_banner') or {}),
        )

    def columns(self) -> Dict[str, Dict[str, Any]]:
        """Column values for QuoteFinancialConfig."""
        return {
            'vat_config': asdict(self.vat_config),
            'advance_config': asdict(self.advance_config),
            'discount_config': asdict(self.discount_config),
            'payment_terms': asdict(self.payment_terms),
            'marketing_banner': asdict(self.marketing_banner),
        }
