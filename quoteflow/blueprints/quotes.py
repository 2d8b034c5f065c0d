"""Quotes API blueprint (devis) - multi-tenant JSON endpoints."""
from flask import Blueprint, request, jsonify, send_file, g

from quoteflow.database import get_session
from quoteflow.middleware import require_login
from quoteflow.services.quote_service import (
    create_quote,
    update_quote,
    update_quote_status,
    delete_quote,
    fetch_quote,
    fetch_quotes,
    get_quote_statistics,
)
from quoteflow.services.expiration_service import (
    process_quote_expirations,
    check_and_update_quote_expiration,
)
from quoteflow.services.invoice_service import convert_quote_to_invoice
from quoteflow.services.pdf_service import render_quote_pdf
from quoteflow.exceptions import ValidationError

quotes_bp = Blueprint('quotes', __name__, url_prefix='/api/quotes')


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Corps JSON invalide.')
    return data


@quotes_bp.route('', methods=['GET'])
@require_login
def list_quotes():
    """List the user's quotes, newest first. Optional ?status= filter."""
    quotes = fetch_quotes(get_session(), g.user_id, status=request.args.get('status') or None)
    return jsonify({'success': True, 'data': [q.to_dict(include_children=False) for q in quotes]})


@quotes_bp.route('', methods=['POST'])
@require_login
def create():
    quote = create_quote(get_session(), g.user_id, _payload())
    return jsonify({'success': True, 'data': quote.to_dict()}), 201


@quotes_bp.route('/statistics', methods=['GET'])
@require_login
def statistics():
    return jsonify({'success': True, 'data': get_quote_statistics(get_session(), g.user_id)})


@quotes_bp.route('/expirations', methods=['POST'])
@require_login
def run_expirations():
    """Sweep the current user's quotes."""
    summary = process_quote_expirations(get_session(), user_id=g.user_id)
    return jsonify({'success': True, 'data': summary})


@quotes_bp.route('/<quote_id>', methods=['GET'])
@require_login
def detail(quote_id):
    quote = fetch_quote(get_session(), quote_id, g.user_id)
    return jsonify({'success': True, 'data': quote.to_dict()})


@quotes_bp.route('/<quote_id>', methods=['PUT'])
@require_login
def update(quote_id):
    quote = update_quote(get_session(), quote_id, g.user_id, _payload())
    return jsonify({'success': True, 'data': quote.to_dict()})


@quotes_bp.route('/<quote_id>/status', methods=['PATCH'])
@require_login
def update_status(quote_id):
    status = _payload().get('status')
    if not status:
        raise ValidationError('Statut requis.', field='status')
    quote = update_quote_status(get_session(), quote_id, g.user_id, status)
    return jsonify({'success': True, 'data': quote.to_dict(include_children=False)})


@quotes_bp.route('/<quote_id>', methods=['DELETE'])
@require_login
def delete(quote_id):
    delete_quote(get_session(), quote_id, g.user_id)
    return jsonify({'success': True})


@quotes_bp.route('/<quote_id>/pdf', methods=['GET'])
@require_login
def download_pdf(quote_id):
    quote = fetch_quote(get_session(), quote_id, g.user_id)
    pdf_buffer = render_quote_pdf(quote)
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f'devis_{quote.quote_number}.pdf'
    )


@quotes_bp.route('/<quote_id>/expiration-check', methods=['POST'])
@require_login
def expiration_check(quote_id):
    result = check_and_update_quote_expiration(get_session(), quote_id, g.user_id)
    return jsonify({'success': True, 'data': result})


@quotes_bp.route('/<quote_id>/convert-to-invoice', methods=['POST'])
@require_login
def convert_to_invoice(quote_id):
    """Convert the quote; body may carry the client's view of the quote (status, client, net_amount)."""
    quote_data = _payload()
    quote_data['id'] = quote_id
    invoice = convert_quote_to_invoice(get_session(), quote_data, g.user_id)
    return jsonify({'success': True, 'data': invoice.to_dict()}), 201
