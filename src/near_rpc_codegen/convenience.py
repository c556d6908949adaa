"""Hand-written helpers layered on the generated client wrappers.

Generated clients inherit :class:`NearRpcConvenienceMixin`. Its helpers build
the parameter objects for common queries, call the generated coroutine for the
underlying RPC method and check the shape of the result.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Optional, Union

from .json_types import JSONObject, JSONValue, MutableJSONObject, decode_json_value
from .naming import rpc_method_to_function_name
from .transport import RpcError, RpcValidationError

logger = logging.getLogger(__name__)

DEFAULT_FINALITY = "final"

type BlockReference = Union[int, str]


class NearRpcConvenienceMixin:
    """Shortcuts for the NEAR RPC calls applications make most often."""

    async def view_account(
        self,
        account_id: str,
        *,
        finality: str = DEFAULT_FINALITY,
        block_id: Optional[BlockReference] = None,
    ) -> JSONObject:
        """Return the account view for ``account_id``."""
        params = _query_params(
            "view_account",
            {"account_id": account_id},
            finality=finality,
            block_id=block_id,
        )
        result = await self._call_method("query", params)
        return _require_object(
            result, key="amount", message="Account not found", field="account_id"
        )

    async def view_function(
        self,
        account_id: str,
        method_name: str,
        *,
        args_base64: Optional[str] = None,
        finality: str = DEFAULT_FINALITY,
        block_id: Optional[BlockReference] = None,
    ) -> JSONObject:
        """Call a read-only contract method and return its call result.

        Args:
            account_id (str): Contract account.
            method_name (str): Contract method to call.
            args_base64 (Optional[str]): Base64 encoded arguments; empty when omitted.
            finality (str): Finality used when ``block_id`` is not given.
            block_id (Optional[BlockReference]): Block height or hash to query at.

        Returns:
            JSONObject: Call result holding ``result`` bytes and ``logs``.
        """
        params = _query_params(
            "call_function",
            {
                "account_id": account_id,
                "method_name": method_name,
                "args_base64": args_base64 or "",
            },
            finality=finality,
            block_id=block_id,
        )
        result = await self._call_method("query", params)
        return _require_object(
            result, key="result", message="Function call failed", field="method_name"
        )

    async def view_function_as_json(
        self,
        account_id: str,
        method_name: str,
        *,
        args_base64: Optional[str] = None,
        finality: str = DEFAULT_FINALITY,
        block_id: Optional[BlockReference] = None,
    ) -> JSONValue:
        """Call a read-only contract method and decode its result as JSON."""
        call_result = await self.view_function(
            account_id,
            method_name,
            args_base64=args_base64,
            finality=finality,
            block_id=block_id,
        )
        return parse_call_result_to_json(call_result)

    async def view_access_key(
        self,
        account_id: str,
        public_key: str,
        *,
        finality: str = DEFAULT_FINALITY,
        block_id: Optional[BlockReference] = None,
    ) -> JSONObject:
        """Return the access key view for ``public_key`` on ``account_id``."""
        params = _query_params(
            "view_access_key",
            {"account_id": account_id, "public_key": public_key},
            finality=finality,
            block_id=block_id,
        )
        result = await self._call_method("query", params)
        return _require_object(
            result, key="permission", message="Access key not found", field="public_key"
        )

    async def get_latest_block(self, *, finality: str = DEFAULT_FINALITY) -> JSONValue:
        """Return the newest block at ``finality``."""
        return await self._call_method("block", {"finality": finality})

    async def get_block(self, block_id: BlockReference) -> JSONValue:
        """Return the block with the given height or hash."""
        return await self._call_method("block", {"block_id": block_id})

    async def get_status(self) -> JSONValue:
        return await self._call_method("status")

    async def get_transaction_status(
        self, transaction_hash: str, sender_account_id: str
    ) -> JSONValue:
        """Return the status of a transaction sent by ``sender_account_id``."""
        return await self._call_method(
            "tx",
            {"tx_hash": transaction_hash, "sender_account_id": sender_account_id},
        )

    async def get_gas_price(self, block_id: Optional[BlockReference] = None) -> JSONValue:
        """Return the gas price at ``block_id``, or at the latest block."""
        return await self._call_method("gas_price", _optional_block(block_id))

    async def get_network_info(self) -> JSONValue:
        return await self._call_method("network_info")

    async def get_validators(self, block_id: Optional[BlockReference] = None) -> JSONValue:
        """Return the validators at ``block_id``, or for the latest epoch."""
        return await self._call_method("validators", _optional_block(block_id))

    async def is_healthy(self) -> bool:
        """Report whether the endpoint answers a ``status`` call."""
        try:
            await self.get_status()
        except RpcError as exc:
            logger.debug("Health check failed: %s", exc)
            return False
        return True

    async def get_current_block_height(self, *, finality: str = DEFAULT_FINALITY) -> int:
        """Return the height of the newest block at ``finality``."""
        block = await self.get_latest_block(finality=finality)
        header = block.get("header") if isinstance(block, Mapping) else None
        height = header.get("height") if isinstance(header, Mapping) else None
        if not isinstance(height, int) or isinstance(height, bool) or height < 0:
            raise RpcValidationError("Invalid block response")
        return height

    async def _call_method(
        self, operation_id: str, params: Optional[JSONObject] = None
    ) -> JSONValue:
        wrapper_name = rpc_method_to_function_name(operation_id)
        wrapper: Optional[Callable[..., Awaitable[JSONValue]]] = getattr(self, wrapper_name, None)
        if wrapper is None:
            raise RpcValidationError(
                f"RPC method {operation_id} is not available in this client",
                field=wrapper_name,
            )
        if params is None:
            return await wrapper()
        return await wrapper(params)


def parse_call_result_to_json(call_result: JSONObject) -> JSONValue:
    """Decode the ``result`` of a contract call as JSON.

    NEAR returns the bytes of the call result as a list of integers; a list of
    text chunks is joined as is.

    Args:
        call_result (JSONObject): Call result returned by ``view_function``.

    Returns:
        JSONValue: Decoded JSON value.
    """
    chunks = call_result.get("result")
    try:
        if isinstance(chunks, list) and all(isinstance(chunk, str) for chunk in chunks):
            payload: Union[str, bytes] = "".join(chunks)  # type: ignore[arg-type]
        elif isinstance(chunks, list):
            payload = bytes(chunks)  # type: ignore[arg-type]
        else:
            raise RpcValidationError("Invalid call result data", field="result")
        return decode_json_value(payload)
    except (TypeError, ValueError) as exc:
        raise RpcValidationError(f"Invalid call result data: {exc}", field="result") from exc


def _query_params(
    request_type: str,
    arguments: MutableJSONObject,
    *,
    finality: str,
    block_id: Optional[BlockReference],
) -> JSONObject:
    params: MutableJSONObject = {"request_type": request_type, **arguments}
    if block_id is not None:
        params["block_id"] = block_id
    else:
        params["finality"] = finality
    return params


def _optional_block(block_id: Optional[BlockReference]) -> JSONObject:
    return {} if block_id is None else {"block_id": block_id}


def _require_object(result: JSONValue, *, key: str, message: str, field: str) -> JSONObject:
    if not isinstance(result, Mapping) or key not in result:
        raise RpcValidationError(message, field=field)
    return result
