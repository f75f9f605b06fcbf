import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session

from conftest import API, load_order, load_product
from storefront.database import engine
from storefront.models.order import Order, OrderStatus
from storefront.models.product import Product

ORDERS = f"{API}/orders"
CART = f"{API}/cart"

ADDRESS = {
    "fullName": "Alice Doe",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zipCode": "62701",
    "country": "US",
}

PAYMENT = {
    "id": "PAY-123",
    "status": "COMPLETED",
    "update_time": "2026-10-19T10:00:00Z",
    "payer": {"email_address": "alice@example.com"},
}


def order_payload(*lines, **overrides) -> dict:
    payload = {
        "orderItems": [{"productId": str(pid), "quantity": qty} for pid, qty in lines],
        "shippingAddress": ADDRESS,
        "paymentMethod": "PayPal",
        "itemsPrice": 230,
        "taxPrice": 23,
        "shippingPrice": 0,
        "totalPrice": 253,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def products(make_product):
    return {
        "a": make_product(name="Product A", price=100, discount=10, count_in_stock=5, image="/a.png"),
        "b": make_product(name="Product B", price=50, count_in_stock=3),
    }


@pytest.fixture
def placed_order(client, customer, products) -> dict:
    resp = client.post(ORDERS, json=order_payload((products["a"], 2), (products["b"], 1)), headers=customer)
    assert resp.status_code == 201
    return resp.json()


def set_status(client, admin, order_id, status):
    return client.put(f"{ORDERS}/{order_id}/status", json={"status": status}, headers=admin)


class TestCreateOrder:
    def test_creates_pending_snapshot(self, placed_order, products, customer_id):
        assert placed_order["status"] == "pending"
        assert placed_order["isPaid"] is False
        assert placed_order["paidAt"] is None
        assert placed_order["isDelivered"] is False
        assert placed_order["userId"] == str(customer_id)
        assert placed_order["shippingAddress"] == ADDRESS
        assert placed_order["totalPrice"] == 253

        item_a = next(i for i in placed_order["orderItems"] if i["productId"] == str(products["a"]))
        assert item_a["name"] == "Product A"
        assert item_a["image"] == "/a.png"
        assert item_a["unitPrice"] == 100
        assert item_a["discount"] == 10
        assert item_a["quantity"] == 2
        assert item_a["lineTotal"] == pytest.approx(180)

    def test_takes_stock_and_counts_sold(self, placed_order, products):
        a = load_product(products["a"])
        b = load_product(products["b"])
        assert (a.count_in_stock, a.sold) == (3, 2)
        assert (b.count_in_stock, b.sold) == (2, 1)

    def test_snapshot_survives_price_change(self, client, customer, placed_order, products):
        with Session(engine) as s:
            product = s.get(Product, products["a"])
            product.price = 999
            product.discount = 0
            s.add(product)
            s.commit()

        order = client.get(f"{ORDERS}/{placed_order['id']}", headers=customer).json()
        item_a = next(i for i in order["orderItems"] if i["productId"] == str(products["a"]))
        assert item_a["unitPrice"] == 100
        assert item_a["discount"] == 10

    def test_empty_items_rejected_without_stock_change(self, client, customer, products):
        resp = client.post(ORDERS, json=order_payload(), headers=customer)
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "invalid_argument"
        assert load_product(products["a"]).count_in_stock == 5

    def test_missing_fields(self, client, customer, products):
        payload = order_payload((products["a"], 1))
        del payload["paymentMethod"]
        resp = client.post(ORDERS, json=payload, headers=customer)
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["code"] == "invalid_argument"
        assert detail["field"] == "paymentMethod"
        assert load_product(products["a"]).count_in_stock == 5

    def test_missing_nested_field(self, client, customer, products):
        address = {k: v for k, v in ADDRESS.items() if k != "city"}
        resp = client.post(ORDERS, json=order_payload((products["a"], 1), shippingAddress=address), headers=customer)
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "shippingAddress.city"

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity(self, client, customer, products, quantity):
        payload = order_payload((products["a"], 1), (products["b"], quantity))
        resp = client.post(ORDERS, json=payload, headers=customer)
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["code"] == "invalid_argument"
        assert detail["field"] == "orderItems[1].quantity"
        assert load_product(products["a"]).count_in_stock == 5
        assert load_product(products["b"]).count_in_stock == 3

    def test_insufficient_stock_rolls_back_everything(self, client, customer, products):
        resp = client.post(
            ORDERS,
            json=order_payload((products["a"], 2), (products["b"], 4)),
            headers=customer,
        )
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["code"] == "insufficient_stock"
        assert detail["productId"] == str(products["b"])
        assert detail["available"] == 3

        a = load_product(products["a"])
        assert (a.count_in_stock, a.sold) == (5, 0)
        assert client.get(f"{ORDERS}/my-orders", headers=customer).json() == []

    def test_unknown_product_rolls_back_everything(self, client, customer, products):
        resp = client.post(
            ORDERS,
            json=order_payload((products["a"], 1), (uuid.uuid4(), 1)),
            headers=customer,
        )
        assert resp.status_code == 404
        assert load_product(products["a"]).count_in_stock == 5

    def test_checkout_empties_cart(self, client, customer, products, make_coupon):
        make_coupon()
        client.post(f"{CART}/items", json={"productId": str(products["b"]), "quantity": 1}, headers=customer)
        client.post(f"{CART}/apply-coupon", json={"couponCode": "SAVE20"}, headers=customer)

        resp = client.post(ORDERS, json=order_payload((products["b"], 1)), headers=customer)
        assert resp.status_code == 201

        cart = client.get(CART, headers=customer).json()
        assert cart["items"] == []
        assert cart["coupon"] is None


class TestOrderAccess:
    def test_owner_can_read(self, client, customer, placed_order):
        resp = client.get(f"{ORDERS}/{placed_order['id']}", headers=customer)
        assert resp.status_code == 200
        assert resp.json()["id"] == placed_order["id"]

    def test_admin_can_read(self, client, admin, placed_order):
        assert client.get(f"{ORDERS}/{placed_order['id']}", headers=admin).status_code == 200

    def test_other_user_is_refused(self, client, other_customer, placed_order):
        resp = client.get(f"{ORDERS}/{placed_order['id']}", headers=other_customer)
        assert resp.status_code == 403
        assert resp.json()["detail"]["code"] == "unauthorized"

    def test_unknown_order(self, client, customer):
        assert client.get(f"{ORDERS}/{uuid.uuid4()}", headers=customer).status_code == 404

    def test_my_orders(self, client, customer, other_customer, placed_order):
        mine = client.get(f"{ORDERS}/my-orders", headers=customer).json()
        assert [o["id"] for o in mine] == [placed_order["id"]]
        assert client.get(f"{ORDERS}/my-orders", headers=other_customer).json() == []


class TestMarkPaid:
    def test_sets_paid_flag_only(self, client, customer, placed_order):
        resp = client.put(f"{ORDERS}/{placed_order['id']}/pay", json=PAYMENT, headers=customer)
        assert resp.status_code == 200
        body = resp.json()
        assert body["isPaid"] is True
        assert body["paidAt"] is not None
        assert body["status"] == "pending"
        assert body["paymentResult"] == {
            "id": "PAY-123",
            "status": "COMPLETED",
            "update_time": "2026-10-19T10:00:00Z",
            "email_address": "alice@example.com",
        }

    def test_second_payment_rejected(self, client, customer, placed_order):
        client.put(f"{ORDERS}/{placed_order['id']}/pay", json=PAYMENT, headers=customer)
        resp = client.put(f"{ORDERS}/{placed_order['id']}/pay", json=PAYMENT, headers=customer)
        assert resp.status_code == 400

    def test_other_user_cannot_pay(self, client, other_customer, placed_order):
        resp = client.put(f"{ORDERS}/{placed_order['id']}/pay", json=PAYMENT, headers=other_customer)
        assert resp.status_code == 403
        assert load_order(uuid.UUID(placed_order["id"])).is_paid is False


class TestUpdateStatus:
    def test_admin_only(self, client, customer, placed_order):
        assert set_status(client, customer, placed_order["id"], "processing").status_code == 403

    def test_unknown_order(self, client, admin):
        resp = set_status(client, admin, uuid.uuid4(), "processing")
        assert resp.status_code == 404

    def test_full_lifecycle(self, client, admin, placed_order):
        oid = placed_order["id"]
        for status in ("processing", "shipped"):
            body = set_status(client, admin, oid, status).json()
            assert body["status"] == status
            assert body["isDelivered"] is False
            assert body["deliveredAt"] is None

        body = set_status(client, admin, oid, "delivered").json()
        assert body["status"] == "delivered"
        assert body["isDelivered"] is True
        assert body["deliveredAt"] is not None

    def test_cancel_from_non_terminal(self, client, admin, placed_order):
        oid = placed_order["id"]
        set_status(client, admin, oid, "processing")
        body = set_status(client, admin, oid, "cancelled").json()
        assert body["status"] == "cancelled"
        assert body["isDelivered"] is False

    @pytest.mark.parametrize(
        "path,target",
        [
            ([], "shipped"),
            ([], "delivered"),
            (["processing"], "pending"),
            (["processing", "shipped", "delivered"], "pending"),
            (["processing", "shipped", "delivered"], "cancelled"),
            (["cancelled"], "processing"),
        ],
    )
    def test_illegal_transitions(self, client, admin, placed_order, path, target):
        oid = placed_order["id"]
        for status in path:
            assert set_status(client, admin, oid, status).status_code == 200

        resp = set_status(client, admin, oid, target)
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["code"] == "invalid_status_transition"
        assert detail["to"] == target

    def test_same_status_is_noop(self, client, admin, placed_order):
        resp = set_status(client, admin, placed_order["id"], "pending")
        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"

    def test_unknown_status_value(self, client, admin, placed_order):
        resp = set_status(client, admin, placed_order["id"], "lost")
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "status"

    def test_payment_independent_of_status(self, client, admin, customer, placed_order):
        oid = placed_order["id"]
        client.put(f"{ORDERS}/{oid}/pay", json=PAYMENT, headers=customer)
        body = set_status(client, admin, oid, "processing").json()
        assert body["isPaid"] is True
        assert body["status"] == "processing"


def _seed_orders(user_id):
    """Five orders on consecutive days with mixed flags."""
    base = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    seeds = [
        ("pending", False, False, 10),
        ("processing", True, False, 50),
        ("shipped", True, False, 30),
        ("delivered", True, True, 20),
        ("cancelled", False, False, 40),
    ]
    ids = []
    with Session(engine) as s:
        for day, (status, paid, delivered, total) in enumerate(seeds):
            order = Order(
                user_id=user_id,
                full_name="Alice Doe",
                address="1 Main St",
                city="Springfield",
                zip_code="62701",
                country="US",
                payment_method="PayPal",
                items_price=total,
                total_price=total,
                status=OrderStatus(status),
                is_paid=paid,
                is_delivered=delivered,
                created_at=base + timedelta(days=day),
            )
            s.add(order)
            s.commit()
            ids.append(str(order.id))
    return ids


class TestListOrders:
    @pytest.fixture
    def seeded(self, client, customer, customer_id):
        client.get(CART, headers=customer)  # provisions the user row
        return _seed_orders(customer_id)

    def list_orders(self, client, admin, **params):
        resp = client.get(ORDERS, params=params, headers=admin)
        assert resp.status_code == 200
        return resp.json()

    def test_admin_only(self, client, customer):
        assert client.get(ORDERS, headers=customer).status_code == 403

    def test_default_newest_first(self, client, admin, seeded):
        body = self.list_orders(client, admin)
        assert [o["id"] for o in body["orders"]] == list(reversed(seeded))
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 1,
            "totalCount": 5,
            "limit": 10,
        }

    def test_filter_by_status(self, client, admin, seeded):
        body = self.list_orders(client, admin, status="shipped")
        assert [o["id"] for o in body["orders"]] == [seeded[2]]

    def test_filter_by_paid_and_delivered(self, client, admin, seeded):
        paid = self.list_orders(client, admin, isPaid="true")
        assert {o["id"] for o in paid["orders"]} == set(seeded[1:4])

        undelivered_unpaid = self.list_orders(client, admin, isPaid="false", isDelivered="false")
        assert {o["id"] for o in undelivered_unpaid["orders"]} == {seeded[0], seeded[4]}

    def test_date_range_end_inclusive(self, client, admin, seeded):
        body = self.list_orders(client, admin, startDate="2026-03-02", endDate="2026-03-04")
        assert {o["id"] for o in body["orders"]} == set(seeded[1:4])
        assert body["pagination"]["totalCount"] == 3

    def test_sort_by_total(self, client, admin, seeded):
        asc = self.list_orders(client, admin, sortBy="totalPrice")
        assert [o["totalPrice"] for o in asc["orders"]] == [10, 20, 30, 40, 50]

        desc = self.list_orders(client, admin, sortBy="totalPrice", order="desc")
        assert [o["totalPrice"] for o in desc["orders"]] == [50, 40, 30, 20, 10]

    def test_unknown_sort_field(self, client, admin, seeded):
        resp = client.get(ORDERS, params={"sortBy": "password"}, headers=admin)
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "invalid_argument"
        assert resp.json()["detail"]["field"] == "sortBy"

    def test_pagination(self, client, admin, seeded):
        body = self.list_orders(client, admin, page=2, limit=2, sortBy="createdAt")
        assert [o["id"] for o in body["orders"]] == seeded[2:4]
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalCount": 5,
            "limit": 2,
        }

    def test_page_past_end_is_empty(self, client, admin, seeded):
        body = self.list_orders(client, admin, page=9, limit=2)
        assert body["orders"] == []
        assert body["pagination"]["totalCount"] == 5

    def test_limit_capped(self, client, admin, seeded):
        body = self.list_orders(client, admin, limit=10_000)
        assert body["pagination"]["limit"] == 100
