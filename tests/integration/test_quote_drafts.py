"""
Integration tests for quote draft autosave.
"""

import pytest
from datetime import datetime, timedelta, timezone

from quoteflow.models import QuoteDraft
from quoteflow.exceptions import ValidationError, NotFoundError
from quoteflow.services.quote_draft_service import (
    save_quote_draft,
    load_quote_draft,
    load_quote_draft_by_quote_number,
    delete_quote_draft,
    delete_quote_draft_by_quote_number,
    list_quote_drafts,
    load_recent_quote_drafts,
)


class TestSaveQuoteDraft:

    def test_same_key_updates_single_row(self, session, user_id):
        """Autosave twice with the same quote number: one row, latest payload."""
        save_quote_draft(session, user_id, {'title': 'v1'}, profile_id='p1', quote_number='Q-2026-001')
        save_quote_draft(session, user_id, {'title': 'v2'}, profile_id='p1', quote_number='Q-2026-001')

        drafts = session.query(QuoteDraft).filter_by(user_id=user_id).all()
        assert len(drafts) == 1
        assert drafts[0].draft_data == {'title': 'v2'}

    def test_null_profile_is_part_of_the_key(self, session, user_id):
        save_quote_draft(session, user_id, {'title': 'v1'}, quote_number='Q-2026-002')
        save_quote_draft(session, user_id, {'title': 'v2'}, quote_number='Q-2026-002')
        save_quote_draft(session, user_id, {'title': 'other'}, profile_id='p1', quote_number='Q-2026-002')

        assert session.query(QuoteDraft).filter_by(user_id=user_id).count() == 2
        draft = load_quote_draft_by_quote_number(session, user_id, 'Q-2026-002')
        assert draft.draft_data == {'title': 'v2'}

    def test_update_by_id(self, session, user_id):
        draft = save_quote_draft(session, user_id, {'title': 'v1'})
        draft_id = draft.id

        updated = save_quote_draft(session, user_id, {'title': 'v2'}, draft_id=draft_id)

        assert updated.id == draft_id
        assert session.query(QuoteDraft).count() == 1

    def test_unknown_id_falls_back_to_key(self, session, user_id):
        existing = save_quote_draft(session, user_id, {'title': 'v1'}, quote_number='Q-2026-003')
        existing_id = existing.id

        saved = save_quote_draft(session, user_id, {'title': 'v2'},
                                 quote_number='Q-2026-003', draft_id='deleted-draft-id')

        assert saved.id == existing_id
        assert saved.draft_data == {'title': 'v2'}

    def test_renaming_onto_taken_key_keeps_one_draft(self, session, user_id):
        first = save_quote_draft(session, user_id, {'title': 'A'}, quote_number='Q-A')
        first_id = first.id
        save_quote_draft(session, user_id, {'title': 'B'}, quote_number='Q-B')

        saved = save_quote_draft(session, user_id, {'title': 'A renamed'}, quote_number='Q-B', draft_id=first_id)

        drafts = session.query(QuoteDraft).filter_by(user_id=user_id, quote_number='Q-B').all()
        assert len(drafts) == 1
        assert drafts[0].id == saved.id == first_id
        assert drafts[0].draft_data == {'title': 'A renamed'}
        assert session.query(QuoteDraft).filter_by(user_id=user_id).count() == 1

    def test_renaming_keeps_other_profiles_draft(self, session, user_id):
        first = save_quote_draft(session, user_id, {'title': 'A'}, profile_id='p1', quote_number='Q-A')
        first_id = first.id
        save_quote_draft(session, user_id, {'title': 'B'}, profile_id='p2', quote_number='Q-B')

        save_quote_draft(session, user_id, {'title': 'A renamed'}, quote_number='Q-B', draft_id=first_id)

        assert session.query(QuoteDraft).filter_by(user_id=user_id, quote_number='Q-B').count() == 2

    def test_without_number_always_inserts(self, session, user_id):
        save_quote_draft(session, user_id, {'title': 'a'})
        save_quote_draft(session, user_id, {'title': 'b'})
        assert session.query(QuoteDraft).count() == 2

    def test_other_user_draft_id_not_touched(self, session, user_id, other_user_id):
        mine = save_quote_draft(session, user_id, {'title': 'mine'})
        mine_id = mine.id

        save_quote_draft(session, other_user_id, {'title': 'theirs'}, draft_id=mine_id)

        assert session.query(QuoteDraft).filter_by(id=mine_id).one().draft_data == {'title': 'mine'}
        assert session.query(QuoteDraft).count() == 2

    def test_user_required(self, session):
        with pytest.raises(ValidationError):
            save_quote_draft(session, None, {'title': 'x'})


class TestLoadAndDeleteDrafts:

    def _stamp(self, session, draft, minutes_ago):
        draft.last_saved = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
        session.commit()

    def test_recent_respects_limit_and_order(self, session, user_id):
        drafts = [save_quote_draft(session, user_id, {'n': n}) for n in range(4)]
        for age, draft in enumerate(drafts):
            self._stamp(session, draft, minutes_ago=10 - age)

        recent = load_recent_quote_drafts(session, user_id, limit=2)

        assert [d.draft_data['n'] for d in recent] == [3, 2]

    def test_list_is_per_user(self, session, user_id, other_user_id):
        save_quote_draft(session, user_id, {'title': 'mine'})
        save_quote_draft(session, other_user_id, {'title': 'theirs'})

        assert [d.draft_data for d in list_quote_drafts(session, user_id)] == [{'title': 'mine'}]

    def test_missing_by_number_returns_none(self, session, user_id):
        assert load_quote_draft_by_quote_number(session, user_id, 'Q-0000-000') is None

    def test_load_unknown_id(self, session, user_id):
        with pytest.raises(NotFoundError):
            load_quote_draft(session, user_id, 'nope')

    def test_delete_by_id(self, session, user_id):
        draft = save_quote_draft(session, user_id, {'title': 'x'})
        delete_quote_draft(session, user_id, draft.id)
        assert session.query(QuoteDraft).count() == 0

    def test_delete_by_number(self, session, user_id):
        save_quote_draft(session, user_id, {'title': 'x'}, profile_id='p1', quote_number='Q-2026-010')

        assert delete_quote_draft_by_quote_number(session, user_id, 'Q-2026-010') == 0
        assert delete_quote_draft_by_quote_number(session, user_id, 'Q-2026-010', profile_id='p1') == 1
        assert session.query(QuoteDraft).count() == 0
