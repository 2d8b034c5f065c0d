"""Public (unauthenticated) quote share link."""
from flask import Blueprint, jsonify, request

from quoteflow.database import get_session
from quoteflow.services.quote_service import mark_quote_viewed_by_token

public_bp = Blueprint('public', __name__)


@public_bp.route('/share/<share_token>', methods=['GET'])
def shared_quote(share_token):
    """
    Client opens the quote link received by email.

    Logs the access and marks sent quotes as viewed. Internal ids of the
    tenant are not exposed.
    """
    quote = mark_quote_viewed_by_token(
        get_session(),
        share_token,
        ip_address=request.headers.get('X-Forwarded-For', request.remote_addr),
        user_agent=request.headers.get('User-Agent'),
    )
    data = quote.to_dict()
    for private_field in ('user_id', 'profile_id', 'lead_id', 'share_token'):
        data.pop(private_field, None)
    return jsonify({'success': True, 'data': data})
