def test_metrics_endpoint_exposes_prometheus(client, db_session):
    client.get('/health')
    resp = client.get('/metrics')
    assert resp.status_code == 200
    body = resp.data.decode('utf-8')
    # Basic presence of our metric names
    assert 'fh_http_requests_total' in body
    assert 'fh_ticket_scans_total' in body
    assert 'fh_coin_movements_total' in body
    assert 'fh_payment_verifications_total' in body
    # Check content type
    assert resp.mimetype.startswith('text/plain')


def test_request_counter_labels_route_rule(client, db_session):
    client.get('/api/events/12345')
    body = client.get('/metrics').data.decode('utf-8')
    assert 'endpoint="/api/events/<int:event_id>"' in body


def test_ticket_scan_counter(client, rich_headers, admin_headers, active_event):
    ticket = client.post('/api/tickets/purchase-with-coins', headers=rich_headers,
                         json={'eventId': active_event.id}).get_json()['ticket']
    client.post('/api/tickets/validate', headers=admin_headers,
                json={'qrCode': ticket['qr_code'], 'qrToken': ticket['qr_token']})
    body = client.get('/metrics').data.decode('utf-8')
    assert 'fh_ticket_scans_total{result="valid"}' in body
    assert 'fh_coin_movements_total{direction="debit",transaction_type="ticket_purchase"}' in body
