import re
from urllib.parse import urljoin
from typing import (
    Any,
    Optional,
    Sequence,
)

from eth_utils import (
    decode_hex,
    to_int,
)
import requests

from beaconsync._utils.logging import get_logger
from beaconsync.constants import (
    DEFAULT_MAX_ERROR_BODY_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    JSONRPC_REQUEST_ID,
    JSONRPC_VERSION,
)
from beaconsync.exceptions import (
    ProtocolViolation,
    Unreachable,
)

HEX_QUANTITY_PATTERN = re.compile(r'(0[xX])?[0-9a-fA-F]+')
HEX_DATA_PATTERN = re.compile(r'0[xX]([0-9a-fA-F]{2})*')

UINT64_MAX = 2 ** 64 - 1


def parse_quantity(value: Any, field: str, method: str) -> int:
    """
    Parse a JSON-RPC hex quantity, with or without ``0x`` prefix, into an unsigned 64 bit int.
    """
    if not isinstance(value, str) or not HEX_QUANTITY_PATTERN.fullmatch(value):
        raise ProtocolViolation(
            f"Expected a hex quantity for {field}, got {value!r}",
            operation=method,
            field=field,
        )
    quantity = to_int(hexstr=value)
    if quantity > UINT64_MAX:
        raise ProtocolViolation(
            f"Quantity for {field} does not fit in 64 bits: {value}",
            operation=method,
            field=field,
        )
    return quantity


def parse_data(value: Any, field: str, method: str, size: Optional[int] = None) -> bytes:
    if not isinstance(value, str) or not HEX_DATA_PATTERN.fullmatch(value):
        raise ProtocolViolation(
            f"Expected hex data for {field}, got {value!r}",
            operation=method,
            field=field,
        )
    data = decode_hex(value)
    if size is not None and len(data) != size:
        raise ProtocolViolation(
            f"Expected {size} bytes for {field}, got {len(data)}",
            operation=method,
            field=field,
        )
    return data


class JSONRPCClient:
    """
    Minimal JSON-RPC 2.0 client for an ETH1 endpoint.

    Every request is a POST to the endpoint root with a fixed id. Transport failures,
    timeouts and non-2xx answers raise :class:`~beaconsync.exceptions.Unreachable`,
    anything unexpected inside a 2xx answer raises
    :class:`~beaconsync.exceptions.ProtocolViolation`. Nothing is retried.
    """
    logger = get_logger('beaconsync.eth1.rpc.JSONRPCClient')

    def __init__(self,
                 endpoint: str,
                 session: requests.Session = None,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 max_error_body_size: int = DEFAULT_MAX_ERROR_BODY_SIZE) -> None:
        if not endpoint:
            raise ValueError("Must provide an ETH1 endpoint")
        if timeout <= 0:
            raise ValueError(f"`timeout` must be positive: {timeout}")
        if max_error_body_size <= 0:
            raise ValueError(f"`max_error_body_size` must be positive: {max_error_body_size}")

        self._endpoint = endpoint
        if session is None:
            session = requests.Session()
        self._session = session
        self.timeout = timeout
        self.max_error_body_size = max_error_body_size

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @endpoint.setter
    def endpoint(self, value: str) -> None:
        if not value:
            raise ValueError("Must provide an ETH1 endpoint")
        if value != self._endpoint:
            self.logger.info("Switching ETH1 endpoint from %s to %s", self._endpoint, value)
        self._endpoint = value

    def _error_body(self, response: requests.Response) -> str:
        # only the first chunk is read off the wire
        body = next(response.iter_content(chunk_size=self.max_error_body_size), b'')
        return body[:self.max_error_body_size].decode('utf8', errors='replace')

    def request(self, method: str, params: Sequence[Any] = ()) -> Any:
        endpoint = self.endpoint
        payload = {
            'jsonrpc': JSONRPC_VERSION,
            'method': method,
            'params': list(params),
            'id': JSONRPC_REQUEST_ID,
        }
        self.logger.debug2("Calling %s at %s with %r", method, endpoint, payload['params'])

        try:
            response = self._session.post(
                urljoin(endpoint, '/'),
                json=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout,
                stream=True,
            )
        except requests.RequestException as err:
            raise Unreachable(
                f"Request failed: {err}",
                cause=err,
                operation=method,
                endpoint=endpoint,
            ) from err

        is_success = 200 <= response.status_code < 300
        try:
            if is_success:
                # buffers the body, the connection is released below
                response.content
            else:
                body = self._error_body(response)
        except requests.RequestException as err:
            raise Unreachable(
                f"Failed to read response: {err}",
                cause=err,
                operation=method,
                endpoint=endpoint,
                status_code=response.status_code,
            ) from err
        finally:
            response.close()

        if not is_success:
            raise Unreachable(
                f"Invalid status code: {response.status_code}, {response.reason}",
                operation=method,
                endpoint=endpoint,
                status_code=response.status_code,
                body=body,
            )

        try:
            value = response.json()
        except ValueError as err:
            raise ProtocolViolation(
                "Response is not valid JSON",
                cause=err,
                operation=method,
                endpoint=endpoint,
                body=self._error_body(response),
            ) from err

        if not isinstance(value, dict):
            raise ProtocolViolation(
                f"Response must be a JSON object, got {type(value).__name__}",
                operation=method,
                endpoint=endpoint,
            )

        error = value.get('error')
        if error is not None:
            raise ProtocolViolation(
                f"JSON-RPC error: {error!r}",
                operation=method,
                endpoint=endpoint,
            )

        if 'result' not in value:
            raise ProtocolViolation(
                "Response has no result",
                operation=method,
                endpoint=endpoint,
            )

        return value['result']

    def close(self) -> None:
        self._session.close()
