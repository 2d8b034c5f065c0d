"""Invoices API blueprint."""
from flask import Blueprint, request, jsonify, g

from quoteflow.database import get_session
from quoteflow.middleware import require_login
from quoteflow.services.invoice_service import fetch_invoices, update_invoice_status
from quoteflow.exceptions import ValidationError

invoices_bp = Blueprint('invoices', __name__, url_prefix='/api/invoices')


@invoices_bp.route('', methods=['GET'])
@require_login
def list_invoices():
    invoices = fetch_invoices(get_session(), g.user_id, status=request.args.get('status') or None)
    return jsonify({'success': True, 'data': [i.to_dict() for i in invoices]})


@invoices_bp.route('/<invoice_id>/status', methods=['PATCH'])
@require_login
def update_status(invoice_id):
    status = (request.get_json(silent=True) or {}).get('status')
    if not status:
        raise ValidationError('Statut requis.', field='status')
    invoice = update_invoice_status(get_session(), invoice_id, g.user_id, status)
    return jsonify({'success': True, 'data': invoice.to_dict()})
