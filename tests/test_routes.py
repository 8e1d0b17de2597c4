# Overview: Pytest coverage for the JSON API, error mapping and CLI.

"""
HTTP API tests against the SQL-backed app.

Covers:
- X-User-Id requirement
- product/variant/sale lifecycle through the API
- error mapping: 400 validation, 404 unknown or foreign ids, 409 invariant/stock
- stats, periods and dashboard payloads
"""

import pytest

from resale_wallet import create_app

from .conftest import OTHER_USER, user_headers


def create_blazer(client):
    response = client.post('/api/products', headers=user_headers(), json={
        'name': 'Zara Oversized Blazer',
        'purchase_price': '25.00',
        'purchase_date': '2026-03-01',
        'variants': [{'label': 'S', 'quantity': 1}, {'label': 'M', 'quantity': 1}],
    })
    assert response.status_code == 201
    return response.get_json()


class TestAuthHeader:
    def test_missing_user_header(self, client):
        assert client.get('/api/products').status_code == 401

    def test_health_is_public(self, client):
        response = client.get('/api/system/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'ok'


class TestProductRoutes:
    def test_create_and_list(self, client):
        created = create_blazer(client)
        assert [v['label'] for v in created['variants']] == ['S', 'M']

        listing = client.get('/api/products', headers=user_headers()).get_json()
        assert listing['count'] == 1
        item = listing['items'][0]
        assert item['summary']['units_available'] == 2
        assert item['return_status']['status'] in {'normal', 'warning', 'expired'}
        assert item['has_return_warning'] is (item['return_status']['status'] != 'normal')

    def test_validation_error_is_400(self, client):
        response = client.post('/api/products', headers=user_headers(), json={
            'name': 'Hoodie', 'purchase_price': '-1', 'purchase_date': '2026-03-01', 'quantity': 1,
        })
        assert response.status_code == 400
        assert 'purchase_price' in response.get_json()['error']

    def test_foreign_product_is_404(self, client):
        created = create_blazer(client)
        response = client.get(f"/api/products/{created['id']}", headers=user_headers(OTHER_USER))
        assert response.status_code == 404

    def test_update_and_soft_delete(self, client):
        created = create_blazer(client)
        url = f"/api/products/{created['id']}"

        updated = client.put(url, headers=user_headers(), json={'notes': 'Bulk buy'})
        assert updated.status_code == 200
        assert updated.get_json()['notes'] == 'Bulk buy'

        assert client.delete(url, headers=user_headers()).status_code == 200
        assert client.get('/api/products', headers=user_headers()).get_json()['count'] == 0
        with_deleted = client.get('/api/products?include_deleted=1', headers=user_headers()).get_json()
        assert with_deleted['items'][0]['status'] == 'DELETED'

    def test_variant_lifecycle(self, client):
        created = create_blazer(client)
        added = client.post(
            f"/api/products/{created['id']}/variants", headers=user_headers(), json={'label': 'L', 'quantity': 2},
        )
        assert added.status_code == 201
        variant_id = added.get_json()['id']

        stocked = client.post(f'/api/variants/{variant_id}/stock', headers=user_headers(), json={'delta': 3})
        assert stocked.get_json()['total_quantity'] == 5

        reset = client.put(f'/api/variants/{variant_id}', headers=user_headers(), json={'total_quantity': 1})
        assert reset.get_json()['available_quantity'] == 1

        assert client.delete(f'/api/variants/{variant_id}', headers=user_headers()).status_code == 200


class TestSaleRoutes:
    def test_sale_then_oversell_is_409(self, client):
        created = create_blazer(client)
        small_id = created['variants'][0]['id']

        sold = client.post(f'/api/variants/{small_id}/sales', headers=user_headers(), json={'sale_price': '55'})
        assert sold.status_code == 201
        assert sold.get_json()['revenue'] == '55.00'

        oversold = client.post(f'/api/variants/{small_id}/sales', headers=user_headers(), json={'sale_price': '55'})
        assert oversold.status_code == 409
        assert oversold.get_json()['details']['available_quantity'] == 0

    def test_invariant_violations_are_409(self, client):
        created = create_blazer(client)
        small_id = created['variants'][0]['id']
        client.post(f'/api/variants/{small_id}/sales', headers=user_headers(), json={'sale_price': '55'})

        shrink = client.put(f'/api/variants/{small_id}', headers=user_headers(), json={'total_quantity': 0})
        assert shrink.status_code == 409
        assert client.delete(f'/api/variants/{small_id}', headers=user_headers()).status_code == 409

    def test_product_detail_lists_sales_with_deadline(self, client):
        created = create_blazer(client)
        small_id = created['variants'][0]['id']
        client.post(f'/api/variants/{small_id}/sales', headers=user_headers(), json={
            'sale_price': '55', 'sold_at': '2026-03-10T10:00:00Z',
        })

        detail = client.get(f"/api/products/{created['id']}", headers=user_headers()).get_json()
        assert detail['summary']['average_sale_price'] == '55.00'
        assert detail['sales'][0]['return_deadline']['deadline'] == '2026-03-24'

        listing = client.get(f"/api/sales?product_id={created['id']}", headers=user_headers()).get_json()
        assert listing['count'] == 1

    def test_non_object_sale_body_is_400(self, client):
        created = create_blazer(client)
        small_id = created['variants'][0]['id']

        response = client.post(f'/api/variants/{small_id}/sales', headers=user_headers(), json=[1])
        assert response.status_code == 400
        assert client.get('/api/stats/overview', headers=user_headers()).get_json()['total_earned'] == '0.00'


class TestStatsRoutes:
    def test_overview_and_budget(self, client):
        created = create_blazer(client)
        client.put('/api/settings/budget', headers=user_headers(), json={'starting_budget': '500'})
        client.post(
            f"/api/variants/{created['variants'][0]['id']}/sales", headers=user_headers(), json={'sale_price': '55'},
        )

        stats = client.get('/api/stats/overview', headers=user_headers()).get_json()
        assert stats['total_invested'] == '50.00'
        assert stats['total_earned'] == '55.00'
        assert stats['wallet_balance'] == '505.00'
        assert stats['net_profit'] == '30.00'

        budget = client.get('/api/settings/budget', headers=user_headers()).get_json()
        assert budget['starting_budget'] == '500.00'

    def test_negative_budget_is_400(self, client):
        response = client.put('/api/settings/budget', headers=user_headers(), json={'starting_budget': '-5'})
        assert response.status_code == 400

    def test_periods_clamp_positive_offsets(self, client):
        periods = client.get('/api/stats/periods?week=3&month=-1', headers=user_headers()).get_json()
        assert periods['week']['offset'] == 0
        assert periods['month']['offset'] == -1
        assert periods['year']['available'] is True

    def test_bad_offset_is_400(self, client):
        assert client.get('/api/stats/periods?week=soon', headers=user_headers()).status_code == 400

    @pytest.mark.parametrize('query', ['year=-3000', 'month=-30000', 'week=-1000000000000'])
    def test_offset_before_year_one_is_400(self, client, query):
        response = client.get(f'/api/stats/periods?{query}', headers=user_headers())
        assert response.status_code == 400
        assert 'out of range' in response.get_json()['error']

    def test_non_object_budget_body_is_400(self, client):
        response = client.put('/api/settings/budget', headers=user_headers(), json=[1])
        assert response.status_code == 400

    def test_dashboard(self, client):
        dashboard = client.get('/api/stats/dashboard', headers=user_headers()).get_json()
        assert set(dashboard) == {'stats', 'periods'}
        assert set(dashboard['periods']) == {'week', 'month', 'year'}


class TestDemoMode:
    @pytest.fixture
    def demo_app(self):
        return create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'WALLET_REPOSITORY': 'memory',
            'WALLET_SEED_DEMO': True,
            'WALLET_DEMO_USER_ID': 'demo-user',
        })

    def test_seeded_demo_data(self, demo_app):
        client = demo_app.test_client()
        products = client.get('/api/products', headers=user_headers('demo-user')).get_json()
        assert products['count'] == 8

        stats = client.get('/api/stats/overview', headers=user_headers('demo-user')).get_json()
        assert stats['starting_budget'] == '500.00'
        assert stats['total_items_sold'] == 10

    def test_cli_stats(self, demo_app):
        result = demo_app.test_cli_runner().invoke(args=['wallet', 'stats', '--user-id', 'demo-user'])
        assert result.exit_code == 0
        assert 'wallet_balance' in result.output


class TestCli:
    def test_seed_demo_into_database(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['wallet', 'seed-demo', '--user-id', 'cli-user'])
        assert result.exit_code == 0
        assert 'Seeded 8 demo products' in result.output

        stats = runner.invoke(args=['wallet', 'stats', '--user-id', 'cli-user'])
        assert 'starting_budget         500.00' in stats.output
