"""Quote drafts API blueprint (autosave of the quote form)."""
from flask import Blueprint, request, jsonify, g, current_app

from quoteflow.database import get_session
from quoteflow.middleware import require_login
from quoteflow.services.quote_draft_service import (
    save_quote_draft,
    load_quote_draft,
    load_quote_draft_by_quote_number,
    delete_quote_draft,
    delete_quote_draft_by_quote_number,
    list_quote_drafts,
    load_recent_quote_drafts,
)
from quoteflow.exceptions import ValidationError, NotFoundError

quote_drafts_bp = Blueprint('quote_drafts', __name__, url_prefix='/api/quote-drafts')


@quote_drafts_bp.route('', methods=['GET'])
@require_login
def list_drafts():
    drafts = list_quote_drafts(get_session(), g.user_id, profile_id=request.args.get('profile_id'))
    return jsonify({'success': True, 'data': [d.to_dict() for d in drafts]})


@quote_drafts_bp.route('/recent', methods=['GET'])
@require_login
def recent_drafts():
    default_limit = current_app.config.get('RECENT_DRAFTS_LIMIT', 5)
    limit = request.args.get('limit', default_limit, type=int)
    drafts = load_recent_quote_drafts(get_session(), g.user_id, limit=limit,
                                      profile_id=request.args.get('profile_id'))
    return jsonify({'success': True, 'data': [d.to_dict() for d in drafts]})


@quote_drafts_bp.route('', methods=['POST'])
@require_login
def save_draft():
    """Body: {draft_data, profile_id?, quote_number?, id?}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get('draft_data'), dict):
        raise ValidationError('draft_data doit être un objet JSON.', field='draft_data')
    draft = save_quote_draft(
        get_session(),
        g.user_id,
        data['draft_data'],
        profile_id=data.get('profile_id'),
        quote_number=data.get('quote_number'),
        draft_id=data.get('id'),
    )
    return jsonify({'success': True, 'data': draft.to_dict()})


@quote_drafts_bp.route('/by-number/<quote_number>', methods=['GET'])
@require_login
def get_draft_by_number(quote_number):
    draft = load_quote_draft_by_quote_number(get_session(), g.user_id, quote_number,
                                             profile_id=request.args.get('profile_id'))
    if not draft:
        raise NotFoundError('Brouillon introuvable.')
    return jsonify({'success': True, 'data': draft.to_dict()})


@quote_drafts_bp.route('/by-number/<quote_number>', methods=['DELETE'])
@require_login
def delete_draft_by_number(quote_number):
    deleted = delete_quote_draft_by_quote_number(get_session(), g.user_id, quote_number,
                                                 profile_id=request.args.get('profile_id'))
    return jsonify({'success': True, 'deleted': deleted})


@quote_drafts_bp.route('/<draft_id>', methods=['GET'])
@require_login
def get_draft(draft_id):
    draft = load_quote_draft(get_session(), g.user_id, draft_id)
    return jsonify({'success': True, 'data': draft.to_dict()})


@quote_drafts_bp.route('/<draft_id>', methods=['DELETE'])
@require_login
def delete_draft(draft_id):
    delete_quote_draft(get_session(), g.user_id, draft_id)
    return jsonify({'success': True})
