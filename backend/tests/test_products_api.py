from uuid import UUID, uuid4

from fruitflow.models.product import Product
from fruitflow.models.user import User, UserRole
from fruitflow.services.products import decrement_stock


class TestSupplierProducts:
    def test_create_defaults_placeholder_image(self, client, product):
        assert product["image_url"] == "https://placehold.co/300x200.png?text=Honeycrisp%20Apples"
        assert product["stock_quantity"] == 100

    def test_validation(self, client, supplier, sample_product_data):
        for field, bad in (
            ("name", "ab"),
            ("description", "too short"),
            ("price", 0),
            ("stock_quantity", -1),
            ("produced_area", "X"),
            ("unit", "crate"),
        ):
            payload = {**sample_product_data, field: bad}
            response = client.post("/products", json=payload, headers=supplier.headers)
            assert response.status_code == 422, field

    def test_only_suppliers_list_products(self, client, customer, sample_product_data):
        response = client.post("/products", json=sample_product_data, headers=customer.headers)
        assert response.status_code == 403

    def test_suspended_supplier_cannot_list(self, client, make_user, sample_product_data):
        banned = make_user("banned", UserRole.SUPPLIER, suspended=True)
        response = client.post("/products", json=sample_product_data, headers=banned.headers)
        assert response.status_code == 403

    def test_update_keeps_provenance(self, client, supplier, product):
        response = client.put(
            f"/products/{product['id']}",
            json={"price": 3.0, "produced_area": "Elsewhere"},
            headers=supplier.headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["price"] == 3.0
        assert data["produced_area"] == "Yakima Valley, WA"

    def test_cannot_edit_someone_elses_product(self, client, make_user, product):
        other = make_user("rival", UserRole.SUPPLIER)
        response = client.put(
            f"/products/{product['id']}", json={"price": 1.0}, headers=other.headers
        )
        assert response.status_code == 403

    def test_delete(self, client, supplier, product):
        response = client.delete(f"/products/{product['id']}", headers=supplier.headers)
        assert response.status_code == 204
        assert client.get("/products/mine", headers=supplier.headers).json() == []

    def test_missing_product(self, client, supplier):
        response = client.get(
            "/products/00000000-0000-0000-0000-000000000000", headers=supplier.headers
        )
        assert response.status_code == 404


class TestCatalog:
    def _list(self, client, who, **overrides):
        payload = {
            "name": "Bartlett Pears",
            "description": "Juicy pears with a buttery texture.",
            "price": 14.0,
            "unit": "box",
            "stock_quantity": 10,
            "category": "Pears",
            "produced_date": "2024-09-01T00:00:00",
            "produced_area": "Hood River, OR",
            "produced_by_organization": "Valley Growers",
        }
        payload.update(overrides)
        response = client.post("/products", json=payload, headers=who.headers)
        assert response.status_code == 201
        return response.json()

    def test_search_matches_name_or_category(self, client, customer, supplier, product):
        self._list(client, supplier)

        def names(q):
            groups = client.get(
                "/products/catalog", params={"q": q}, headers=customer.headers
            ).json()
            return [p["name"] for g in groups for p in g["products"]]

        assert names("") == ["Bartlett Pears", "Honeycrisp Apples"]
        assert names("APPLE") == ["Honeycrisp Apples"]
        assert names("pears") == ["Bartlett Pears"]
        assert names("kiwi") == []

    def test_hides_unapproved_and_suspended_suppliers(
        self, client, db_session, customer, supplier, product, make_user
    ):
        pending = make_user("pendingfarm", UserRole.SUPPLIER)
        self._list(client, pending, name="Pending Plums", category="Plums")
        banned = make_user("bannedfarm", UserRole.SUPPLIER)
        self._list(client, banned, name="Banned Bananas", category="Bananas")

        db_session.get(User, pending.id).is_approved = False
        db_session.get(User, banned.id).is_suspended = True
        db_session.commit()

        groups = client.get("/products/catalog", headers=customer.headers).json()
        assert [g["supplier"]["name"] for g in groups] == [supplier.name]

    def test_groups_sorted_by_purchases_then_name(
        self, client, customer, supplier, product, make_user
    ):
        zeta = make_user("zeta-farm", UserRole.SUPPLIER)
        alpha = make_user("alpha-farm", UserRole.SUPPLIER)
        zeta_product = self._list(client, zeta)
        self._list(client, alpha)

        groups = client.get("/products/catalog", headers=customer.headers).json()
        assert [g["supplier"]["name"] for g in groups] == ["alpha-farm", "orchard", "zeta-farm"]

        response = client.post(
            "/orders",
            json={"product_id": zeta_product["id"], "quantity": 1},
            headers=customer.headers,
        )
        assert response.status_code == 201

        groups = client.get("/products/catalog", headers=customer.headers).json()
        assert groups[0]["supplier"]["name"] == "zeta-farm"
        assert groups[0]["purchase_count"] == 1

    def test_catalog_is_for_customers(self, client, supplier):
        assert client.get("/products/catalog", headers=supplier.headers).status_code == 403


class TestShippingEstimate:
    def test_simulated_when_no_model(self, client, customer, product):
        response = client.get(
            f"/products/{product['id']}/shipping-estimate", headers=customer.headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["origin"] == "Yakima Valley, WA"
        assert data["estimate"]["simulated"] is True
        km = data["estimate"]["distance_km"]
        assert 100 <= km <= 599
        assert data["estimated_fee"] == round(2.0 + 0.5 * km, 2)

    def test_requires_customer_address(self, client, make_user, product):
        homeless = make_user("nomad", UserRole.CUSTOMER, address="")
        response = client.get(
            f"/products/{product['id']}/shipping-estimate", headers=homeless.headers
        )
        assert response.status_code == 400


class TestDecrementStock:
    def test_clamped_at_zero(self, db_session, product):
        product_id = UUID(product["id"])
        assert decrement_stock(db_session, product_id, 30) == 70
        assert decrement_stock(db_session, product_id, 500) == 0
        db_session.commit()
        assert db_session.get(Product, product_id).stock_quantity == 0

    def test_missing_product(self, db_session):
        assert decrement_stock(db_session, uuid4(), 1) is None
