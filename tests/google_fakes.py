"""In-memory stand-ins for discovery resources and the token lifecycle."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple


class FakeRequest:
    def __init__(self, api: "FakeApi", method: str, kwargs: Dict[str, Any]) -> None:
        self._api = api
        self.method = method
        self.kwargs = kwargs

    def execute(self, http: Any = None) -> Any:
        self._api.calls.append((self.method, self.kwargs, http))
        result = self._api.responses.get(self.method, {})
        if callable(result):
            result = result(**self.kwargs)
        if isinstance(result, Exception):
            raise result
        return result


class FakeBatch:
    def __init__(self, api: "FakeApi", callback: Callable[..., None]) -> None:
        self._api = api
        self._callback = callback
        self._requests: List[Tuple[str, FakeRequest]] = []

    def add(self, request: FakeRequest, request_id: str) -> None:
        self._requests.append((request_id, request))

    def execute(self, http: Any = None) -> None:
        self._api.batches.append([request_id for request_id, _ in self._requests])
        for request_id, request in self._requests:
            try:
                response = request.execute(http=http)
            except Exception as exc:  # handed to the callback like the real batch does
                self._callback(request_id, None, exc)
            else:
                self._callback(request_id, response, None)


class _Resource:
    def __init__(self, api: "FakeApi", path: Tuple[str, ...]) -> None:
        self._api = api
        self._path = path

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        path = self._path + (name,)
        method = ".".join(path)

        def _call(**kwargs: Any) -> Any:
            if method in self._api.responses or kwargs:
                return FakeRequest(self._api, method, kwargs)
            return _Resource(self._api, path)

        return _call


class FakeApi(_Resource):
    """Chained discovery resource: ``service.tasks().get(...)`` records ``tasks.get``.

    ``responses`` maps dotted method names to a result, an exception or a
    callable computing the result from the call's keyword arguments.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = responses or {}
        self.calls: List[Tuple[str, Dict[str, Any], Any]] = []
        self.batches: List[List[str]] = []
        super().__init__(self, ())

    def new_batch_http_request(self, callback: Callable[..., None]) -> FakeBatch:
        return FakeBatch(self, callback)

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs, _ in self.calls if name == method]


class FakeHttp:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout


class FakeWorkspaceClient:
    def __init__(self, api: FakeApi) -> None:
        self.api = api
        self.services: List[Tuple[str, str]] = []

    def service(self, api_name: str, api_version: str) -> FakeApi:
        self.services.append((api_name, api_version))
        return self.api

    def authorized_http(self, timeout: float) -> FakeHttp:
        return FakeHttp(timeout)


class FakeLifecycle:
    def __init__(self, api: FakeApi, error: Optional[Exception] = None) -> None:
        self.client = FakeWorkspaceClient(api)
        self.error = error
        self.ensured: List[str] = []
        self.invalidated: List[str] = []

    async def ensure_client(self, user_id: str) -> FakeWorkspaceClient:
        self.ensured.append(user_id)
        if self.error is not None:
            raise self.error
        return self.client

    def invalidate_cached_tokens(self, user_id: str) -> None:
        self.invalidated.append(user_id)
