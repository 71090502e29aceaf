"""블록체인 서버 클라이언트 테스트 (httpx.MockTransport)"""

import json
from unittest.mock import patch

import httpx
import pytest

from toremain.core.exceptions import ConfigurationError
from toremain.services.blockchain import (
    HttpBlockchainClient,
    MockBlockchainClient,
    get_blockchain_client,
)

BASE_URL = "http://chain.test"


def _client(handler) -> HttpBlockchainClient:
    transport = httpx.MockTransport(handler)
    return HttpBlockchainClient(
        BASE_URL, client=httpx.Client(base_url=BASE_URL, transport=transport)
    )


class TestHttpMint:
    def test_mint_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"success": True, "tokenId": 42, "txHash": "0xabc"}
            )

        result = _client(handler).mint(
            wallet_address="0xW",
            item_id=3,
            user_equip_item_id=9,
            item_data={"name": "Sword"},
            metadata_url="http://srv/api/metadata/9",
        )
        assert result.success
        assert result.token_id == "42"
        assert result.tx_hash == "0xabc"
        assert seen["path"] == "/api/blockchain/nft/mint"
        assert seen["body"]["walletAddress"] == "0xW"
        assert seen["body"]["userEquipItemId"] == 9
        assert seen["body"]["metadataUrl"] == "http://srv/api/metadata/9"

    def test_mint_error_status(self):
        def handler(request):
            return httpx.Response(500, json={"error": "revert"})

        result = _client(handler).mint("0xW", 1, 1, {}, "u")
        assert not result.success
        assert result.error_message == "revert"

    def test_mint_missing_token_id(self):
        def handler(request):
            return httpx.Response(200, json={"success": True})

        result = _client(handler).mint("0xW", 1, 1, {}, "u")
        assert not result.success
        assert result.error_message

    def test_mint_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = _client(handler).mint("0xW", 1, 1, {}, "u")
        assert not result.success
        assert "통신 오류" in result.error_message


class TestHttpContractCalls:
    def test_burn_payload(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "txHash": "0xb"})

        result = _client(handler).burn("0xW", "5", "0xC")
        assert result.success and result.tx_hash == "0xb"
        assert seen["body"] == {"userAddress": "0xW", "tokenId": "5", "contractAddress": "0xC"}

    def test_transfer_uses_nft_id_key(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        assert _client(handler).transfer("0xA", "0xB", "5", "0xC").success
        assert seen["path"] == "/api/blockchain/nft/transfer"
        assert seen["body"]["nftId"] == "5"
        assert seen["body"]["toWalletAddress"] == "0xB"

    def test_unlock_failure_message(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "errorMessage": "not locked"})

        result = _client(handler).unlock("0xW", "5", "0xC")
        assert not result.success
        assert result.error_message == "not locked"

    def test_list_nfts(self):
        def handler(request):
            assert request.url.params["walletAddress"] == "0xW"
            return httpx.Response(200, json={"success": True, "nftIdList": [1, "2"]})

        result = _client(handler).list_nfts("0xW", "0xC")
        assert result.success
        assert result.nft_ids == ["1", "2"]

    def test_lock_success_and_error(self):
        def ok(request):
            assert request.url.path == "/api/blockchain/nft/lockup"
            return httpx.Response(
                200, json={"txHash": "0xl", "vaultAddress": "0xV", "message": "locked"}
            )

        def fail(request):
            return httpx.Response(
                400, json={"error": "Not owner", "details": {"owner": "0xZ"}}
            )

        locked = _client(ok).lock("0xW", "5", "0xC")
        assert locked.success and locked.vault_address == "0xV"

        failed = _client(fail).lock("0xW", "5", "0xC")
        assert not failed.success
        assert failed.error == "Not owner"
        assert failed.details == {"owner": "0xZ"}


class TestMockBlockchainClient:
    def test_mint_assigns_sequential_tokens(self):
        mock = MockBlockchainClient()
        a = mock.mint("0xA", 1, 1, {}, "u1")
        b = mock.mint("0xA", 1, 2, {}, "u2")
        assert (a.token_id, b.token_id) == ("1", "2")
        assert mock.list_nfts("0xA", "c").nft_ids == ["1", "2"]

    def test_burn_requires_owner(self):
        mock = MockBlockchainClient()
        mock.mint("0xA", 1, 1, {}, "u")
        assert not mock.burn("0xB", "1", "c").success
        assert mock.burn("0xA", "1", "c").success
        assert mock.list_nfts("0xA", "c").nft_ids == []

    def test_locked_token_cannot_transfer(self):
        mock = MockBlockchainClient()
        mock.mint("0xA", 1, 1, {}, "u")
        assert mock.lock("0xA", "1", "c").success
        assert not mock.lock("0xA", "1", "c").success
        assert not mock.transfer("0xA", "0xB", "1", "c").success
        assert mock.unlock("0xA", "1", "c").success
        assert mock.transfer("0xA", "0xB", "1", "c").success
        assert mock.owners["1"] == "0xB"


class TestFactory:
    def test_mock_provider(self):
        assert isinstance(get_blockchain_client("mock"), MockBlockchainClient)

    def test_http_provider(self):
        with patch("toremain.services.blockchain.factory.settings") as mock_settings:
            mock_settings.BLOCKCHAIN_PROVIDER = "http"
            mock_settings.BLOCKCHAIN_SERVER_URL = BASE_URL
            mock_settings.BLOCKCHAIN_TIMEOUT = 5.0
            client = get_blockchain_client()
        assert isinstance(client, HttpBlockchainClient)
        client.close()

    def test_provider_name_case_insensitive(self):
        with patch("toremain.services.blockchain.factory.settings") as mock_settings:
            mock_settings.BLOCKCHAIN_SERVER_URL = BASE_URL
            mock_settings.BLOCKCHAIN_TIMEOUT = 5.0
            client = get_blockchain_client(" HTTP ")
        assert isinstance(client, HttpBlockchainClient)
        client.close()

    def test_http_without_url_raises(self):
        with patch("toremain.services.blockchain.factory.settings") as mock_settings:
            mock_settings.BLOCKCHAIN_SERVER_URL = ""
            with pytest.raises(ConfigurationError):
                get_blockchain_client("http")

    @pytest.mark.parametrize("name", ["unknown", "web3", "mocks"])
    def test_unknown_provider_raises(self, name):
        with pytest.raises(ConfigurationError) as exc:
            get_blockchain_client(name)
        assert exc.value.details == {"supported": ["http", "mock"]}

    def test_empty_provider_raises(self):
        with patch("toremain.services.blockchain.factory.settings") as mock_settings:
            mock_settings.BLOCKCHAIN_PROVIDER = ""
            with pytest.raises(ConfigurationError):
                get_blockchain_client()
