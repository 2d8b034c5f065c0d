"""PDF rendering for quotes (devis)."""
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from quoteflow.utils.formatters import money_eur, num_fr, date_fr


def render_quote_pdf(quote) -> BytesIO:
    """
    Render a persisted quote (with tasks, materials and financial config) to PDF.

    Returns:
        BytesIO positioned at 0
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'QuoteTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'QuoteHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and company header
    elements.append(Paragraph("DEVIS", title_style))

    profile = quote.company_profile
    if profile:
        elements.append(Paragraph(f"<b>{profile.company_name}</b>", header_style))
        address = ", ".join(p for p in (profile.address, profile.postal_code, profile.city) if p)
        if address:
            elements.append(Paragraph(address, header_style))
        contact_parts = []
        if profile.phone:
            contact_parts.append(f"Tél : {profile.phone}")
        if profile.email:
            contact_parts.append(f"Email : {profile.email}")
        if profile.vat_number:
            contact_parts.append(f"TVA : {profile.vat_number}")
        if contact_parts:
            elements.append(Paragraph(" | ".join(contact_parts), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Quote metadata
    info_data = [
        ['Devis N° :', quote.quote_number],
        ['Date :', date_fr(quote.created_at)],
    ]
    if quote.valid_until:
        info_data.append(['Valable jusqu\'au :', date_fr(quote.valid_until)])
    if quote.client:
        info_data.append(['Client :', quote.client.name])
        if quote.client.address:
            info_data.append(['Adresse :', quote.client.address])
    if quote.title:
        info_data.append(['Objet :', quote.title])

    info_table = Table(info_data, colWidths=[2*inch, 4*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Tasks and materials
    table_data = [['Désignation', 'Unité', 'Qté', 'P.U. HT', 'Total HT']]
    for task in quote.tasks:
        table_data.append([
            task.name,
            task.unit or '-',
            num_fr(task.quantity, 2),
            money_eur(task.unit_price),
            money_eur(task.total_price),
        ])
        for material in task.materials:
            table_data.append([
                f"   • {material.name}",
                material.unit or '-',
                num_fr(material.quantity, 2),
                money_eur(material.unit_price),
                money_eur(material.total_price),
            ])

    items_table = Table(table_data, colWidths=[3*inch, 0.7*inch, 0.7*inch, 1.1*inch, 1.2*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (1, 1), (2, -1), 'CENTER'),
        ('ALIGN', (3, 1), (4, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals_data = [['Total HT :', money_eur(quote.total_amount)]]
    if quote.discount_amount:
        totals_data.append(['Remise :', f"- {money_eur(quote.discount_amount)}"])
    totals_data.append(['TVA :', money_eur(quote.tax_amount)])
    totals_data.append(['TOTAL TTC :', money_eur(quote.final_amount)])

    totals_table = Table(totals_data, colWidths=[5.5*inch, 1.2*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 13),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, -1), (-1, -1), 2, colors.HexColor('#27AE60')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.4*inch))

    # 5. Footer: payment terms and notes
    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9,
                                  textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
    footer_parts = []
    config = quote.financial_config
    if config and config.payment_terms:
        terms = config.payment_terms.get('terms')
        if terms:
            footer_parts.append(f"<b>Conditions de paiement :</b> {terms}")
    if config and config.advance_config and config.advance_config.get('enabled'):
        footer_parts.append(f"Acompte : {num_fr(config.advance_config.get('percentage'), 0)} %")
    if config and config.marketing_banner and config.marketing_banner.get('enabled'):
        message = config.marketing_banner.get('message')
        if message:
            footer_parts.append(f"<i>{message}</i>")
    if quote.description:
        footer_parts.append(f"<b>Notes :</b> {quote.description}")
    footer_parts.append("<i>Bon pour accord : date et signature du client.</i>")

    elements.append(Paragraph("<br/>".join(footer_parts), footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
