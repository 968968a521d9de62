from fruitflow.config import settings
from fruitflow.models.order import Order, OrderStatus
from fruitflow.models.user import User, UserRole
from fruitflow.seed import DEFAULT_MANAGER_ADDRESS, seed_default_manager
from fruitflow.services.users import NEW_MANAGER_ADDRESS, refresh_ratings


def _assessed_orders(db, supplier, customer, rating, count):
    for _ in range(count):
        db.add(
            Order(
                product_name="Apples",
                supplier_id=supplier.id,
                supplier_name=supplier.name,
                customer_id=customer.id,
                customer_name=customer.name,
                quantity=1,
                unit="kg",
                price_per_unit=2.0,
                total_amount=2.0,
                status=OrderStatus.COMPLETED,
                assessment_submitted=True,
                supplier_rating=rating,
            )
        )
    db.commit()


class TestSignupAndLogin:
    def test_customer_signup_is_logged_in(self, client):
        response = client.post(
            "/auth/signup", json={"name": "alice", "password": "pw", "role": "customer"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["is_approved"] is True

    def test_partner_signup_waits_for_approval(self, client, manager):
        response = client.post(
            "/auth/signup", json={"name": "farm", "password": "pw", "role": "supplier"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token"] is None
        assert "awaiting manager approval" in data["message"]

        login = client.post("/auth/login", json={"name": "farm", "password": "pw"})
        assert login.status_code == 403
        assert "awaiting manager approval" in login.json()["detail"]

        approve = client.post(
            f"/users/{data['user']['id']}/approve", headers=manager.headers
        )
        assert approve.status_code == 200
        assert approve.json()["is_approved"] is True

        login = client.post("/auth/login", json={"name": "farm", "password": "pw"})
        assert login.status_code == 200
        assert login.json()["user"]["role"] == "supplier"

    def test_manager_role_cannot_sign_up(self, client):
        response = client.post(
            "/auth/signup", json={"name": "sneaky", "password": "pw", "role": "manager"}
        )
        assert response.status_code == 403

    def test_duplicate_name_conflicts(self, client, customer):
        response = client.post(
            "/auth/signup", json={"name": customer.name, "password": "pw", "role": "customer"}
        )
        assert response.status_code == 409

    def test_missing_fields_rejected(self, client):
        response = client.post("/auth/signup", json={"name": "", "password": "pw", "role": "customer"})
        assert response.status_code == 422

    def test_invalid_credentials(self, client, customer):
        response = client.post("/auth/login", json={"name": customer.name, "password": "nope"})
        assert response.status_code == 401
        response = client.post("/auth/login", json={"name": "ghost", "password": "secret"})
        assert response.status_code == 401

    def test_suspended_account_cannot_log_in(self, client, make_user):
        make_user("badfarm", UserRole.SUPPLIER, suspended=True)
        response = client.post("/auth/login", json={"name": "badfarm", "password": "secret"})
        assert response.status_code == 403
        assert "suspended" in response.json()["detail"]


class TestProfile:
    def test_me_requires_token(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_me_rejects_garbage_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_update_own_address(self, client, customer):
        response = client.put(
            "/auth/me/address", json={"address": "  9 New Road  "}, headers=customer.headers
        )
        assert response.status_code == 200
        assert response.json()["address"] == "9 New Road"
        assert client.get("/auth/me", headers=customer.headers).json()["address"] == "9 New Road"


class TestManagerOperations:
    def test_manager_only(self, client, customer):
        assert client.get("/users", headers=customer.headers).status_code == 403
        assert client.get("/users/approvals", headers=customer.headers).status_code == 403

    def test_approvals_split_pending_and_approved(self, client, manager, supplier, make_user):
        make_user("newhauler", UserRole.TRANSPORTER, approved=False)
        data = client.get("/users/approvals", headers=manager.headers).json()
        assert [u["name"] for u in data["pending"]] == ["newhauler"]
        assert [u["name"] for u in data["approved"]] == [supplier.name]

    def test_approve_unknown_user(self, client, manager):
        response = client.post(
            "/users/00000000-0000-0000-0000-000000000000/approve", headers=manager.headers
        )
        assert response.status_code == 404

    def test_add_manager(self, client, manager):
        response = client.post(
            "/users/managers", json={"name": "deputy", "password": "pw"}, headers=manager.headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "manager"
        assert data["address"] == NEW_MANAGER_ADDRESS

        again = client.post(
            "/users/managers", json={"name": "deputy", "password": "pw"}, headers=manager.headers
        )
        assert again.status_code == 409

    def test_available_transporters(self, client, supplier, transporter, make_user):
        make_user("pending-hauler", UserRole.TRANSPORTER, approved=False)
        make_user("banned-hauler", UserRole.TRANSPORTER, suspended=True)
        data = client.get("/users/transporters", headers=supplier.headers).json()
        assert [u["name"] for u in data] == [transporter.name]


class TestDefaultManager:
    def test_created_and_can_log_in(self, client, db_session):
        seed_default_manager(db_session)
        response = client.post(
            "/auth/login",
            json={
                "name": settings.default_manager_username,
                "password": settings.default_manager_password,
            },
        )
        assert response.status_code == 200
        assert response.json()["user"]["address"] == DEFAULT_MANAGER_ADDRESS

    def test_existing_manager_repaired(self, client, make_user, db_session):
        make_user(settings.default_manager_username, UserRole.MANAGER, password="forgotten")
        seed_default_manager(db_session)
        response = client.post(
            "/auth/login",
            json={
                "name": settings.default_manager_username,
                "password": settings.default_manager_password,
            },
        )
        assert response.status_code == 200
        assert db_session.query(User).filter(User.role == UserRole.MANAGER).count() == 1


class TestRatingSuspension:
    def test_ten_low_ratings_suspend_supplier(self, db_session, supplier, customer):
        _assessed_orders(db_session, supplier, customer, rating=1, count=10)
        user = db_session.get(User, supplier.id)
        assert refresh_ratings(db_session, user) is True
        assert user.is_suspended
        assert user.supplier_rating_count == 10
        assert user.average_supplier_rating == 1.0

    def test_nine_low_ratings_are_not_enough(self, db_session, supplier, customer):
        _assessed_orders(db_session, supplier, customer, rating=1, count=9)
        user = db_session.get(User, supplier.id)
        assert refresh_ratings(db_session, user) is False
        assert not user.is_suspended

    def test_suspension_is_sticky(self, db_session, supplier, customer):
        _assessed_orders(db_session, supplier, customer, rating=1, count=10)
        user = db_session.get(User, supplier.id)
        refresh_ratings(db_session, user)
        _assessed_orders(db_session, supplier, customer, rating=5, count=20)
        assert refresh_ratings(db_session, user) is False
        assert user.is_suspended

    def test_manager_refresh_reports_newly_suspended(self, client, db_session, manager, supplier, customer):
        _assessed_orders(db_session, supplier, customer, rating=1, count=10)
        response = client.post("/users/refresh-ratings", headers=manager.headers)
        assert response.status_code == 200
        assert [u["name"] for u in response.json()] == [supplier.name]

        login = client.post("/auth/login", json={"name": supplier.name, "password": "secret"})
        assert login.status_code == 403
