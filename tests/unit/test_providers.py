"""
tests/unit/test_providers.py - RPC provider failover.

httpx is replaced by a mocked AsyncClient; no network.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock

from chains.providers import RPCProvider
from core.constants import ErrorCode
from core.exceptions import InfraError

PRIMARY = "https://primary.example"
BACKUP = "https://backup.example"


def make_response(body: dict) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock()
    response.json = MagicMock(return_value=body)
    return response


def ok(result) -> MagicMock:
    return make_response({"jsonrpc": "2.0", "id": 1, "result": result})


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LENDSIM_RPC_URL", raising=False)
    monkeypatch.delenv("ALCHEMY_API_KEY", raising=False)


@pytest.fixture
def client():
    client = MagicMock()
    client.post = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def provider(client):
    provider = RPCProvider(chain_id=137, rpc_urls=[PRIMARY, BACKUP], timeout_seconds=5)
    provider._client = client
    return provider


class TestUrlResolution:
    def test_templated_url_skipped_without_key(self):
        provider = RPCProvider(137, ["https://x.alchemy.com/v2/${ALCHEMY_API_KEY}", BACKUP])
        assert provider.rpc_urls == [BACKUP]

    def test_templated_url_filled_with_key(self, monkeypatch):
        monkeypatch.setenv("ALCHEMY_API_KEY", "secret")
        provider = RPCProvider(137, ["https://x.alchemy.com/v2/${ALCHEMY_API_KEY}"])
        assert provider.rpc_urls == ["https://x.alchemy.com/v2/secret"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LENDSIM_RPC_URL", "http://localhost:8545")
        provider = RPCProvider(137, [PRIMARY, BACKUP])
        assert provider.rpc_urls == ["http://localhost:8545"]
        assert list(provider.stats) == ["http://localhost:8545"]


class TestCall:
    @pytest.mark.asyncio
    async def test_success(self, provider, client):
        client.post.return_value = ok("0x10")

        response = await provider.call("eth_blockNumber")

        assert response.result == "0x10"
        assert response.endpoint_used == PRIMARY
        assert provider.stats[PRIMARY].successful_requests == 1
        payload = client.post.await_args.kwargs["json"]
        assert payload["method"] == "eth_blockNumber"
        assert payload["params"] == []
        assert payload["jsonrpc"] == "2.0"

    @pytest.mark.asyncio
    async def test_request_ids_increment(self, provider, client):
        client.post.return_value = ok("0x1")
        await provider.call("eth_chainId")
        await provider.call("eth_chainId")
        ids = [c.kwargs["json"]["id"] for c in client.post.await_args_list]
        assert ids == [1, 2]

    @pytest.mark.asyncio
    async def test_failover_on_transport_error(self, provider, client):
        client.post.side_effect = [httpx.ConnectError("connection refused"), ok("0x1")]

        response = await provider.call("eth_chainId")

        assert response.endpoint_used == BACKUP
        assert provider.stats[PRIMARY].failed_requests == 1
        assert "connection refused" in provider.stats[PRIMARY].last_error
        assert provider.stats[BACKUP].successful_requests == 1

    @pytest.mark.asyncio
    async def test_failover_on_http_status(self, provider, client):
        bad = MagicMock()
        bad.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError("503", request=MagicMock(), response=MagicMock())
        )
        client.post.side_effect = [bad, ok("0x1")]

        response = await provider.call("eth_chainId")
        assert response.endpoint_used == BACKUP

    @pytest.mark.asyncio
    async def test_failover_on_bad_json(self, provider, client):
        bad = MagicMock()
        bad.raise_for_status = MagicMock()
        bad.json = MagicMock(side_effect=ValueError("Expecting value"))
        client.post.side_effect = [bad, ok("0x1")]

        response = await provider.call("eth_chainId")
        assert response.endpoint_used == BACKUP

    @pytest.mark.asyncio
    async def test_failover_on_non_object_json(self, provider, client):
        client.post.side_effect = [make_response([]), ok("0x1")]

        response = await provider.call("eth_chainId")
        assert response.endpoint_used == BACKUP
        assert provider.stats[PRIMARY].failed_requests == 1

    @pytest.mark.asyncio
    async def test_non_object_json_everywhere(self, provider, client):
        client.post.return_value = make_response(["not", "an", "object"])

        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_chainId")

        err = exc_info.value
        assert err.code == ErrorCode.INFRA_RPC_ERROR
        assert "Unexpected JSON-RPC response: list" in err.details["last_error"]

    @pytest.mark.asyncio
    async def test_all_timeouts(self, provider, client):
        client.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_call", [{}, "latest"])

        err = exc_info.value
        assert err.code == ErrorCode.INFRA_TIMEOUT
        assert "All RPC endpoints failed for chain 137" in err.message
        assert err.details["endpoints_tried"] == 2
        assert client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_all_transport_failures(self, provider, client):
        client.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_chainId")
        assert exc_info.value.code == ErrorCode.INFRA_RPC_ERROR

    @pytest.mark.asyncio
    async def test_node_error_is_final(self, provider, client):
        client.post.return_value = make_response(
            {"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted"}}
        )

        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_estimateGas", [{}])

        assert exc_info.value.message == "RPC error: execution reverted"
        assert exc_info.value.details["url"] == PRIMARY
        assert client.post.await_count == 1
        assert provider.stats[PRIMARY].failed_requests == 1

    @pytest.mark.asyncio
    async def test_no_endpoints(self):
        provider = RPCProvider(137, [])
        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_chainId")
        assert "No RPC endpoints configured" in exc_info.value.message


class TestHelpers:
    @pytest.mark.asyncio
    async def test_eth_call_params(self, provider, client):
        client.post.return_value = ok("0x" + "00" * 32)

        await provider.eth_call(to="0xabc", data="0x1234", block="0x10")

        payload = client.post.await_args.kwargs["json"]
        assert payload["method"] == "eth_call"
        assert payload["params"] == [{"to": "0xabc", "data": "0x1234"}, "0x10"]

    @pytest.mark.asyncio
    async def test_estimate_gas(self, provider, client):
        client.post.return_value = ok("0x5208")

        gas = await provider.estimate_gas(
            {"to": "0xabc", "data": "0x1234", "from": "0xdef", "value": 0, "gas": None}
        )

        assert gas == 21_000
        params = client.post.await_args.kwargs["json"]["params"]
        assert params == [{"to": "0xabc", "data": "0x1234", "from": "0xdef", "value": "0x0"}]

    @pytest.mark.asyncio
    async def test_close(self, provider, client):
        await provider.close()
        client.aclose.assert_awaited_once()
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client):
        async with RPCProvider(137, [PRIMARY]) as provider:
            provider._client = client
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stats_summary(self, provider, client):
        client.post.side_effect = [httpx.ConnectError("refused"), ok("0x1")]
        await provider.call("eth_chainId")

        summary = provider.get_stats_summary()
        assert summary[PRIMARY]["success_rate"] == 0.0
        assert summary[BACKUP]["success_rate"] == 1.0
        assert summary[PRIMARY]["last_error"] == "refused"
