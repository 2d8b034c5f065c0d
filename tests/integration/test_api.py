"""
HTTP tests for the JSON API blueprints.

Request teardown removes the scoped session, so ids are read from fixtures
before the first request and rows are re-queried afterwards.
"""

from datetime import date

from quoteflow.models import Quote, QuoteAccessLog


class TestAuthentication:

    def test_quotes_require_login(self, client, session):
        response = client.get('/api/quotes')
        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'error': 'Authentification requise', 'status': 'error'}

    def test_metrics_is_public(self, client):
        response = client.get('/metrics')
        assert response.status_code == 200
        assert b'quote_transitions_total' in response.data


class TestQuotesApi:

    def test_create_and_get(self, authenticated_client, client_row, scheduler, sent_emails):
        client_id = client_row.id

        response = authenticated_client.post('/api/quotes', json={
            'client_id': client_id,
            'title': 'Rénovation salle de bain',
            'tasks': [{'description': 'Carrelage', 'quantity': 10, 'unit_price': '45,50'}],
        })
        assert response.status_code == 201
        created = response.get_json()['data']
        assert created['status'] == 'draft'
        assert created['quote_tasks'][0]['total_price'] == 455.0

        response = authenticated_client.get(f"/api/quotes/{created['id']}")
        assert response.status_code == 200
        assert response.get_json()['data']['quote_number'] == created['quote_number']

    def test_validation_error_payload(self, authenticated_client, session):
        response = authenticated_client.post('/api/quotes', json={'title': 'Sans client'})
        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['field'] == 'client_id'

    def test_unknown_quote_is_404(self, authenticated_client, session):
        response = authenticated_client.get('/api/quotes/does-not-exist')
        assert response.status_code == 404

    def test_status_sent_then_expired_refused(self, authenticated_client, session, make_quote,
                                              scheduler, sent_emails):
        quote_id = make_quote(status='draft').id

        response = authenticated_client.patch(f'/api/quotes/{quote_id}/status', json={'status': 'sent'})
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'sent'
        assert scheduler.count('create_followup_for_quote') == 1
        assert [e['kind'] for e in sent_emails] == ['sent']

        response = authenticated_client.patch(f'/api/quotes/{quote_id}/status', json={'status': 'expired'})
        assert response.status_code == 400
        assert session.query(Quote).filter_by(id=quote_id).one().status == 'sent'

    def test_list_filters_by_status(self, authenticated_client, make_quote):
        make_quote(status='draft')
        make_quote(status='accepted')

        response = authenticated_client.get('/api/quotes?status=accepted')
        data = response.get_json()['data']
        assert [q['status'] for q in data] == ['accepted']

    def test_statistics(self, authenticated_client, make_quote):
        make_quote(status='sent', final_amount=100)
        make_quote(status='accepted', final_amount=250)

        data = authenticated_client.get('/api/quotes/statistics').get_json()['data']
        assert data['total_count'] == 2
        assert data['by_status']['sent'] == 1
        assert data['total_amount'] == 350.0

    def test_expiration_sweep_endpoint(self, authenticated_client, session, make_quote):
        quote_id = make_quote(status='sent', valid_until=date(2020, 1, 1)).id

        response = authenticated_client.post('/api/quotes/expirations')
        assert response.get_json()['data']['expired'] == 1
        assert session.query(Quote).filter_by(id=quote_id).one().status == 'expired'

    def test_convert_to_invoice(self, authenticated_client, make_quote, scheduler):
        quote_id = make_quote(status='accepted', total_amount=400, final_amount=484, tax_amount=84).id

        response = authenticated_client.post(f'/api/quotes/{quote_id}/convert-to-invoice', json={})
        assert response.status_code == 201
        invoice = response.get_json()['data']
        assert invoice['status'] == 'unpaid'

        response = authenticated_client.patch(f"/api/invoices/{invoice['id']}/status", json={'status': 'paid'})
        assert response.get_json()['data']['status'] == 'paid'

    def test_pdf_download(self, authenticated_client, make_quote):
        quote_id = make_quote(status='sent', title='Devis PDF').id

        response = authenticated_client.get(f'/api/quotes/{quote_id}/pdf')
        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    def test_delete(self, authenticated_client, session, make_quote):
        quote_id = make_quote().id
        response = authenticated_client.delete(f'/api/quotes/{quote_id}')
        assert response.status_code == 200
        assert session.query(Quote).filter_by(id=quote_id).count() == 0


class TestShareLink:

    def test_opening_link_marks_viewed(self, client, session, make_quote, scheduler):
        quote = make_quote(status='sent')
        quote_id, token = quote.id, quote.share_token

        response = client.get(f'/share/{token}', headers={'User-Agent': 'pytest'})
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['status'] == 'viewed'
        assert 'user_id' not in data
        assert 'share_token' not in data

        assert scheduler.count('mark_quote_viewed') == 1
        assert session.query(QuoteAccessLog).filter_by(quote_id=quote_id).count() == 1

    def test_draft_link_is_hidden(self, client, make_quote):
        token = make_quote(status='draft').share_token
        assert client.get(f'/share/{token}').status_code == 404


class TestQuoteDraftsApi:

    def test_autosave_and_load_by_number(self, authenticated_client, session):
        payload = {'draft_data': {'title': 'Cuisine'}, 'quote_number': 'Q-2026-050'}
        first = authenticated_client.post('/api/quote-drafts', json=payload).get_json()['data']

        payload['draft_data'] = {'title': 'Cuisine équipée'}
        second = authenticated_client.post('/api/quote-drafts', json=payload).get_json()['data']
        assert second['id'] == first['id']

        response = authenticated_client.get('/api/quote-drafts/by-number/Q-2026-050')
        assert response.get_json()['data']['draft_data'] == {'title': 'Cuisine équipée'}

        response = authenticated_client.delete('/api/quote-drafts/by-number/Q-2026-050')
        assert response.get_json()['deleted'] == 1
        assert authenticated_client.get('/api/quote-drafts/by-number/Q-2026-050').status_code == 404

    def test_draft_data_must_be_object(self, authenticated_client, session):
        response = authenticated_client.post('/api/quote-drafts', json={'draft_data': 'nope'})
        assert response.status_code == 400

    def test_recent_limit(self, authenticated_client, session):
        for n in range(3):
            authenticated_client.post('/api/quote-drafts', json={'draft_data': {'n': n}})

        data = authenticated_client.get('/api/quote-drafts/recent?limit=2').get_json()['data']
        assert len(data) == 2
