API = "/api/v1"


def create_account(client, **overrides):
    payload = {"title": "Dance clips", "price": 500, "followers": 10000}
    payload.update(overrides)
    response = client.post(f"{API}/products", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_admin_routes_redirect_without_session(client):
    response = client.post(f"{API}/products", json={"title": "x1", "price": 1, "followers": 1})
    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_wrong_password_is_rejected(client):
    response = client.post(f"{API}/admin/session", json={"password": "admin123"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect password"


def test_login_returns_countdown(admin_client):
    response = admin_client.get(f"{API}/admin/session")
    assert response.status_code == 200
    body = response.json()
    assert body["remaining_seconds"] == 300
    assert body["countdown"] == "05:00"


def test_bearer_token_is_accepted(client):
    token = client.post(f"{API}/admin/session", json={"password": "s3cret"}).json()["token"]
    client.cookies.clear()
    response = client.get(f"{API}/admin/session", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_expired_session_redirects(admin_client, clock):
    clock.advance(minutes=5, seconds=1)
    response = admin_client.get(f"{API}/admin/session")
    assert response.status_code == 303


def test_logout_ends_session(admin_client):
    assert admin_client.delete(f"{API}/admin/session").status_code == 204
    response = admin_client.post(f"{API}/products", json={"title": "x1", "price": 1, "followers": 1})
    assert response.status_code == 303


def test_create_defaults(admin_client):
    account = create_account(admin_client)
    assert account["status"] == "available"
    assert account["views"] == 0
    assert account["id"]
    assert account["stats"] == {"likes": 0, "videos": 0, "bio": ""}


def test_create_validation_errors(admin_client):
    response = admin_client.post(
        f"{API}/products",
        json={"title": "x", "price": 2_000_000, "followers": -1},
    )
    assert response.status_code == 422

    response = admin_client.post(
        f"{API}/products",
        json={"title": "Valid", "price": 10, "followers": 10, "status": "lost"},
    )
    assert response.status_code == 422


def test_mark_as_sold_excludes_from_available_filter(admin_client):
    account = create_account(admin_client, price=500, followers=10000, status="available")

    response = admin_client.post(f"{API}/products/{account['id']}/sold")
    assert response.status_code == 200
    assert response.json()["status"] == "sold"

    available = admin_client.get(f"{API}/products", params={"status": "available"}).json()
    assert account["id"] not in [p["id"] for p in available]

    sold = admin_client.get(f"{API}/products", params={"status": "sold"}).json()
    assert [p["id"] for p in sold] == [account["id"]]


def test_status_transitions(admin_client):
    account = create_account(admin_client)
    pid = account["id"]
    assert admin_client.post(f"{API}/products/{pid}/reserve").json()["status"] == "reserved"
    assert admin_client.post(f"{API}/products/{pid}/available").json()["status"] == "available"


def test_filters_and_sorting(admin_client):
    create_account(admin_client, title="Cheap", price=100, followers=500)
    create_account(admin_client, title="Mid", price=400, followers=5000)
    create_account(admin_client, title="Pricey", price=900, followers=50000)

    result = admin_client.get(
        f"{API}/products",
        params={"max_price": 500, "min_followers": 1000, "sort": "price_asc"},
    ).json()
    assert [p["title"] for p in result] == ["Mid"]

    result = admin_client.get(f"{API}/products", params={"sort": "price_desc"}).json()
    assert [p["title"] for p in result] == ["Pricey", "Mid", "Cheap"]

    result = admin_client.get(f"{API}/products", params={"sort": "followers_asc"}).json()
    assert [p["title"] for p in result] == ["Cheap", "Mid", "Pricey"]


def test_update_merges_fields(admin_client):
    account = create_account(admin_client, description="Original")
    response = admin_client.patch(f"{API}/products/{account['id']}", json={"price": 750})
    body = response.json()
    assert response.status_code == 200
    assert body["price"] == 750
    assert body["description"] == "Original"
    assert body["title"] == "Dance clips"


def test_delete_then_not_found(admin_client):
    account = create_account(admin_client)
    assert admin_client.delete(f"{API}/products/{account['id']}").status_code == 204
    response = admin_client.get(f"{API}/products/{account['id']}")
    assert response.status_code == 404
    assert response.json()["detail"] == "Account not found"


def test_detail_view_records_product_view(admin_client, context):
    account = create_account(admin_client)
    for _ in range(3):
        detail = admin_client.get(f"{API}/products/{account['id']}").json()
    assert context.visits.views_for_subject(account["id"]) == 3
    assert detail["views"] == 3


def test_detail_view_keeps_higher_stored_counter(admin_client):
    account = create_account(admin_client)
    admin_client.patch(f"{API}/products/{account['id']}", json={"views": 40})
    detail = admin_client.get(f"{API}/products/{account['id']}").json()
    assert detail["views"] == 40


def test_purchase_link(admin_client):
    account = create_account(admin_client, title="Cooking tips", whatsapp_number="258840000000")
    response = admin_client.get(f"{API}/products/{account['id']}/purchase-link")
    assert response.status_code == 200
    body = response.json()
    assert body["url"].startswith("https://wa.me/258840000000?text=")
    assert "*Cooking tips*" in body["message"]
    assert "500,00 MT" in body["message"]

    admin_client.post(f"{API}/products/{account['id']}/sold")
    response = admin_client.get(f"{API}/products/{account['id']}/purchase-link")
    assert response.status_code == 409


def test_purchase_link_uses_shop_number_by_default(admin_client):
    account = create_account(admin_client)
    body = admin_client.get(f"{API}/products/{account['id']}/purchase-link").json()
    assert body["url"].startswith("https://wa.me/258841234567?text=")


def test_page_view_endpoint(client, context):
    assert client.post(f"{API}/analytics/page-view").status_code == 202
    assert client.post(f"{API}/analytics/page-view", json={"subject_id": "abc"}).status_code == 202
    stats = context.visits.compute_stats()
    assert stats.total == 2
    assert context.visits.views_for_subject("abc") == 1


def test_dashboard_stats(admin_client):
    first = create_account(admin_client, price=500)
    create_account(admin_client, price=300)
    third = create_account(admin_client, price=1000)
    admin_client.post(f"{API}/products/{first['id']}/sold")
    admin_client.post(f"{API}/products/{third['id']}/reserve")
    admin_client.post(f"{API}/analytics/page-view")

    response = admin_client.get(f"{API}/admin/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["total_accounts"] == 3
    assert body["by_status"] == {"available": 1, "reserved": 1, "sold": 1}
    assert body["total_revenue"] == 500
    assert body["total_revenue_display"] == "500,00 MT"
    assert body["visits"]["today"] == 1
    assert [d["count"] for d in body["visits_last_7_days"]] == [0, 0, 0, 0, 0, 0, 1]


def test_clear_visits(admin_client, context):
    admin_client.post(f"{API}/analytics/page-view")
    response = admin_client.delete(f"{API}/admin/stats/visits")
    assert response.json() == {"cleared": True}
    assert context.visits.compute_stats().total == 0


def test_dashboard_requires_session(client):
    assert client.get(f"{API}/admin/stats").status_code == 303


def test_theme_preference(client):
    assert client.get(f"{API}/preferences/theme").json() == {"theme": "dark"}
    assert client.put(f"{API}/preferences/theme", json={"theme": "light"}).status_code == 200
    assert client.get(f"{API}/preferences/theme").json() == {"theme": "light"}
    assert client.put(f"{API}/preferences/theme", json={"theme": "blue"}).status_code == 422
