"""마켓 API 통합 테스트"""

import pytest
from fastapi.testclient import TestClient

SELLER = "0xSeller"
BUYER = "0xBuyer"


@pytest.fixture()
def seller(signup):
    return signup("seller", SELLER)


@pytest.fixture()
def buyer(signup):
    return signup("buyer", BUYER)


@pytest.fixture()
def create_order(client: TestClient, seller):
    _, headers = seller

    def _create(token_id: str = "1", price: str = "1000", **kwargs) -> dict:
        body = {
            "seller": SELLER,
            "nft_contract": "0xNft",
            "token_id": token_id,
            "price": price,
            "currency": "0xETH",
            "nonce": 1,
            "deadline": 4_000_000_000,
            "signature": "0xsig",
        }
        body.update(kwargs)
        res = client.post("/api/sell-orders", json=body, headers=headers)
        assert res.status_code == 200, res.text
        return res.json()["data"]

    return _create


class TestCreateAndQuery:
    def test_create(self, create_order) -> None:
        order = create_order()
        assert order["status"] == "ACTIVE"
        assert order["price"] == "1000"

    def test_create_for_other_wallet(self, client: TestClient, buyer) -> None:
        _, headers = buyer
        res = client.post(
            "/api/sell-orders",
            json={
                "seller": SELLER,
                "nft_contract": "0xNft",
                "token_id": "1",
                "price": "1",
                "currency": "0xETH",
                "nonce": 1,
                "deadline": 4_000_000_000,
                "signature": "0xsig",
            },
            headers=headers,
        )
        assert res.status_code == 403

    def test_duplicate(self, client: TestClient, create_order, seller) -> None:
        order = create_order()
        _, headers = seller
        body = {k: order[k] for k in ("seller", "nft_contract", "token_id", "price")}
        body.update(currency="0xETH", nonce=2, deadline=4_000_000_000, signature="0xsig2")
        res = client.post("/api/sell-orders", json=body, headers=headers)
        assert res.status_code == 409
        assert res.json()["detail"] == {"order_id": order["order_id"]}

    def test_list_public(self, client: TestClient, create_order) -> None:
        create_order("1")
        res = client.get("/api/sell-orders")
        assert res.status_code == 200
        data = res.json()
        assert data["count"] == 1
        entry = data["data"][0]
        assert entry["sell_order"]["token_id"] == "1"
        assert entry["equip_item"] is None

    def test_user_queries(self, client: TestClient, create_order) -> None:
        create_order("1")
        create_order("2")
        assert client.get(f"/api/sell-orders/user/{SELLER}").json()["count"] == 2
        active = client.get(f"/api/sell-orders/user/{SELLER}/active").json()
        assert active["count"] == 2
        assert active["message"]
        assert client.get(f"/api/sell-orders/user/{SELLER}/completed").json()["count"] == 0
        stats = client.get(f"/api/sell-orders/user/{SELLER}/stats").json()
        assert stats["data"] == {"ACTIVE": 2}

    def test_get_missing(self, client: TestClient) -> None:
        res = client.get("/api/sell-orders/unknown")
        assert res.status_code == 404
        assert res.json()["success"] is False

    def test_offchain_data(self, client: TestClient, create_order) -> None:
        order = create_order()
        res = client.get(f"/api/sell-orders/{order['order_id']}/offchain-data")
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["sell_order"]["order_id"] == order["order_id"]
        assert data["domain"]["name"] == "NFTMarketplace"
        assert "EIP712Domain" in data["types"]


class TestPurchaseFlow:
    def test_lock_and_confirm(self, client: TestClient, create_order, buyer) -> None:
        _, headers = buyer
        order = create_order()
        res = client.post(
            f"/api/sell-orders/{order['order_id']}/lock",
            json={"buyer_address": BUYER},
            headers=headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "LOCKED"

        res = client.post(
            f"/api/sell-orders/{order['order_id']}/confirm",
            json={"buyer_address": BUYER},
            headers=headers,
        )
        assert res.status_code == 200
        final = client.get(f"/api/sell-orders/{order['order_id']}").json()["data"]
        assert final["status"] == "COMPLETED"
        assert final["buyer"] == BUYER

        stats = client.get("/api/market/stats").json()
        assert stats["total_volume"] == "1000"
        assert stats["average_price"] == "1000"

    def test_lock_twice_conflict(self, client: TestClient, create_order, buyer, signup) -> None:
        _, headers = buyer
        _, other_headers = signup("other", "0xOther")
        order = create_order()
        client.post(
            f"/api/sell-orders/{order['order_id']}/lock",
            json={"buyer_address": BUYER},
            headers=headers,
        )
        res = client.post(
            f"/api/sell-orders/{order['order_id']}/lock",
            json={"buyer_address": "0xOther"},
            headers=other_headers,
        )
        assert res.status_code == 409

    def test_failure_reopens(self, client: TestClient, create_order, buyer) -> None:
        _, headers = buyer
        order = create_order()
        client.post(
            f"/api/sell-orders/{order['order_id']}/lock",
            json={"buyer_address": BUYER},
            headers=headers,
        )
        res = client.post(
            f"/api/sell-orders/{order['order_id']}/failure",
            json={"buyer_address": BUYER},
            headers=headers,
        )
        assert res.status_code == 200
        status = client.get(f"/api/sell-orders/{order['order_id']}").json()["data"]["status"]
        assert status == "ACTIVE"

    def test_cancel(self, client: TestClient, create_order, seller) -> None:
        _, headers = seller
        order = create_order()
        res = client.delete(f"/api/sell-orders/{order['order_id']}", headers=headers)
        assert res.status_code == 200
        assert res.json()["success"] is True
        again = client.delete(f"/api/sell-orders/{order['order_id']}", headers=headers)
        assert again.status_code == 409

    def test_cancel_with_differently_cased_seller(self, client: TestClient, signup) -> None:
        _, headers = signup("mixed", "0xAbCdEf")
        res = client.post(
            "/api/sell-orders",
            json={
                "seller": "0xabcdef",
                "nft_contract": "0xNft",
                "token_id": "5",
                "price": "10",
                "currency": "0xETH",
                "nonce": 1,
                "deadline": 4_000_000_000,
                "signature": "0xsig",
            },
            headers=headers,
        )
        assert res.status_code == 200, res.text
        order_id = res.json()["data"]["order_id"]

        res = client.delete(f"/api/sell-orders/{order_id}", headers=headers)
        assert res.status_code == 200
        assert res.json()["success"] is True

    def test_cancel_by_buyer(self, client: TestClient, create_order, buyer) -> None:
        _, headers = buyer
        order = create_order()
        res = client.delete(f"/api/sell-orders/{order['order_id']}", headers=headers)
        assert res.status_code == 403

    def test_status_update_permissions(
        self, client: TestClient, create_order, seller, buyer
    ) -> None:
        order = create_order()
        _, buyer_headers = buyer
        res = client.put(
            f"/api/sell-orders/{order['order_id']}/status",
            json={"status": "CANCELLED"},
            headers=buyer_headers,
        )
        assert res.status_code == 403

        _, seller_headers = seller
        res = client.put(
            f"/api/sell-orders/{order['order_id']}/status",
            json={"status": "cancelled"},
            headers=seller_headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "CANCELLED"

    def test_status_update_invalid(self, client: TestClient, create_order, seller) -> None:
        order = create_order()
        _, headers = seller
        res = client.put(
            f"/api/sell-orders/{order['order_id']}/status",
            json={"status": "SOLD"},
            headers=headers,
        )
        assert res.status_code == 400


class TestMarketQueries:
    def test_popular_and_search(self, client: TestClient, create_order) -> None:
        create_order("11", price="10")
        create_order("12", price="500")
        create_order("20", price="900")

        assert client.get("/api/market/popular", params={"limit": 2}).json()["count"] == 2
        res = client.get(
            "/api/market/search", params={"q": "1", "minPrice": "100", "maxPrice": "600"}
        )
        assert [o["token_id"] for o in res.json()["data"]] == ["12"]

    def test_price_range(self, client: TestClient, create_order) -> None:
        create_order("1", price="10")
        create_order("2", price="20")
        res = client.get("/api/market/price-range", params={"min": "15", "max": "25"})
        assert [o["token_id"] for o in res.json()["data"]] == ["2"]

        bad = client.get("/api/market/price-range", params={"min": "x", "max": "25"})
        assert bad.status_code == 400

    def test_expire_requires_auth(self, client: TestClient) -> None:
        assert client.post("/api/market/expire").status_code == 401

    def test_expire(self, client: TestClient, create_order, seller) -> None:
        _, headers = seller
        create_order("1", deadline=100)
        res = client.post("/api/market/expire", headers=headers)
        assert res.json() == {"success": True, "count": 1}
