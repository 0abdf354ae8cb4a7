from http.client import responses
import json
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Union,
)

import requests

from beaconsync.constants import JSONRPC_REQUEST_ID, JSONRPC_VERSION

Handler = Callable[[Sequence[Any]], Any]


def make_response(status_code: int, body: Union[bytes, str, Dict[str, Any]]) -> requests.Response:
    if isinstance(body, dict):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode('utf8')

    response = requests.Response()
    response.status_code = status_code
    response.reason = responses.get(status_code, '')
    response._content = body
    response._content_consumed = True
    response.encoding = 'utf8'
    return response


def make_result_response(result: Any, request_id: int = JSONRPC_REQUEST_ID) -> requests.Response:
    return make_response(200, {'jsonrpc': JSONRPC_VERSION, 'id': request_id, 'result': result})


class FakeETH1Session:
    """
    Stands in for a :class:`requests.Session` talking to an ETH1 node.

    Each JSON-RPC method is answered by a registered handler, which receives the
    request params and returns either the ``result`` value, a ready made
    :class:`requests.Response`, or an exception to raise from ``post``.
    """

    def __init__(self) -> None:
        self.handlers: Dict[str, Handler] = {}
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def on(self, method: str, handler: Handler) -> None:
        self.handlers[method] = handler

    def returns(self, method: str, result: Any) -> None:
        self.on(method, lambda params: result)

    def calls(self, method: str) -> List[Dict[str, Any]]:
        return [request for request in self.requests if request['payload']['method'] == method]

    def post(self, url: str, json: Dict[str, Any] = None, **kwargs: Any) -> requests.Response:
        self.requests.append(dict(url=url, payload=json, **kwargs))
        method = json['method']
        try:
            handler = self.handlers[method]
        except KeyError:
            return make_response(200, {
                'jsonrpc': JSONRPC_VERSION,
                'id': json['id'],
                'error': {'code': -32601, 'message': f'the method {method} does not exist'},
            })

        result = handler(json['params'])
        if isinstance(result, requests.Response):
            return result
        elif isinstance(result, Exception):
            raise result
        else:
            return make_result_response(result, json['id'])

    def close(self) -> None:
        self.closed = True
