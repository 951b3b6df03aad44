"""Structured HTTP errors raised by any layer and decoded by a top-level handler.

Every error carries an action (where it came from), a client-safe message,
a string payload for logs, an HTTP status code and an optional cause. Raise one
with the builder for its status::

    raise new_not_found_error("get_deal", "Deal not found", payload={"deal_id": "7"})

Handlers call ``decode_error`` to get an ``ErrorWrapper`` for any exception,
falling back to a generic 500 when the chain holds none.

The cause chain must be acyclic. Nothing here guards against a wrapper that
ends up wrapping itself.
"""

from collections.abc import Callable, Iterator, Mapping
from http import HTTPStatus

from errwrap.schemas.error import ErrorRecord, ErrorResponse

# Action given to errors decode_error synthesizes, also the status name of new_error.
GENERIC_ACTION = "generic"

# Symbolic name → HTTP status for every builder.
STATUS_CODES: dict[str, HTTPStatus] = {
    GENERIC_ACTION: HTTPStatus.INTERNAL_SERVER_ERROR,
    "bad_request": HTTPStatus.BAD_REQUEST,
    "unauthorized": HTTPStatus.UNAUTHORIZED,
    "payment_required": HTTPStatus.PAYMENT_REQUIRED,
    "forbidden": HTTPStatus.FORBIDDEN,
    "not_found": HTTPStatus.NOT_FOUND,
    "unprocessable_entity": HTTPStatus.UNPROCESSABLE_ENTITY,
    "internal_server": HTTPStatus.INTERNAL_SERVER_ERROR,
    "not_implemented": HTTPStatus.NOT_IMPLEMENTED,
    "bad_gateway": HTTPStatus.BAD_GATEWAY,
    "service_unavailable": HTTPStatus.SERVICE_UNAVAILABLE,
    "gateway_timeout": HTTPStatus.GATEWAY_TIMEOUT,
}


class ErrorWrapper(Exception):
    """Structured error with an HTTP status and an optional wrapped cause.

    ``code`` is fixed at construction. ``payload`` may be ``None`` until the
    first ``add_payload_value``/``add_payload_values`` call.
    """

    def __init__(
        self,
        action: str,
        message: str,
        code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
        cause: BaseException | None = None,
        payload: Mapping[str, object] | None = None,
    ) -> None:
        self.action = action
        self.message = message
        self._code = int(code)
        self.cause = cause
        self.payload: dict[str, str] | None = (
            _stringify(payload) if payload is not None else None
        )
        super().__init__(message)
        # Keeps tracebacks and __cause__-based walkers in sync with .cause
        self.__cause__ = cause

    @property
    def code(self) -> int:
        return self._code

    def __str__(self) -> str:
        if self.cause is not None:
            return str(self.cause)
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(action={self.action!r}, code={self.code}, "
            f"message={self.message!r})"
        )

    def __reduce__(self) -> tuple[object, ...]:
        # Exception.__reduce__ would rebuild from self.args alone
        return (type(self), (self.action, self.message, self.code, self.cause, self.payload))

    def unwrap(self) -> BaseException | None:
        """Return the wrapped cause, if any."""
        return self.cause

    def dig(self) -> "ErrorWrapper":
        """Return the innermost ``ErrorWrapper`` reachable through the cause chain.

        Returns ``self`` when there is no cause or when nothing below it is a
        wrapper. Foreign exceptions between two wrappers are looked through.
        """
        if self.cause is None:
            return self
        inner = _find_wrapper(self.cause)
        if inner is None:
            return self
        return inner.dig()

    def add_payload_value(self, key: str, value: object) -> None:
        """Set one payload entry, overwriting an existing key. Values are stored as str."""
        if self.payload is None:
            self.payload = {}
        self.payload[key] = str(value)

    def add_payload_values(self, values: Mapping[str, object]) -> None:
        """Merge entries into the payload; incoming values win on collision."""
        if self.payload is None:
            self.payload = {}
        self.payload.update(_stringify(values))

    def as_json_response(self) -> dict[str, str]:
        """Client-facing body: action and message only."""
        return ErrorResponse(action=self.action, message=self.message).model_dump()

    def as_dict(self) -> dict[str, object]:
        """Structured record for logs. Code and cause travel separately."""
        return ErrorRecord(
            action=self.action, message=self.message, payload=self.payload
        ).model_dump()


def _stringify(values: Mapping[str, object]) -> dict[str, str]:
    return {key: str(value) for key, value in values.items()}


def iter_chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield ``err`` and every error below it.

    Wrappers are followed through ``cause``, anything else through
    ``__cause__`` (explicit ``raise ... from ...``). Implicit ``__context__``
    is not followed.
    """
    while err is not None:
        yield err
        err = err.cause if isinstance(err, ErrorWrapper) else err.__cause__


def _find_wrapper(err: BaseException) -> ErrorWrapper | None:
    for link in iter_chain(err):
        if isinstance(link, ErrorWrapper):
            return link
    return None


def decode_error(err: BaseException) -> ErrorWrapper:
    """Return the first ``ErrorWrapper`` in ``err``'s chain, or a generic 500 wrapping it."""
    found = _find_wrapper(err)
    if found is not None:
        return found

    return ErrorWrapper(
        action=GENERIC_ACTION,
        message=str(err),
        code=HTTPStatus.INTERNAL_SERVER_ERROR,
        cause=err,
        payload=None,
    )


def new_error(
    action: str,
    message: str,
    code: int = HTTPStatus.INTERNAL_SERVER_ERROR,
    cause: BaseException | None = None,
    payload: Mapping[str, object] | None = None,
) -> ErrorWrapper:
    """Build a wrapper with ``code`` and ``human_message`` always in the payload.

    The caller's payload is copied with values as str, never mutated. The two
    fixed entries are written last so they always match ``code`` and ``message``.
    """
    err = ErrorWrapper(
        action=action,
        message=message,
        code=code,
        cause=cause,
        payload=payload,
    )
    err.add_payload_values({"code": str(err.code), "human_message": message})
    return err


Builder = Callable[..., ErrorWrapper]


def _status_builder(name: str, status: HTTPStatus) -> Builder:
    def build(
        action: str,
        message: str,
        cause: BaseException | None = None,
        payload: Mapping[str, object] | None = None,
    ) -> ErrorWrapper:
        return new_error(action, message, status, cause, payload)

    build.__name__ = build.__qualname__ = f"new_{name}_error"
    build.__doc__ = f"Return a wrapped error of type {status.phrase} - HTTP {status.value}."
    return build


def new_status_error(
    name: str,
    action: str,
    message: str,
    cause: BaseException | None = None,
    payload: Mapping[str, object] | None = None,
) -> ErrorWrapper:
    """Build a wrapper by symbolic status name, e.g. ``"not_found"``.

    Raises:
        KeyError: ``name`` is not in ``STATUS_CODES``.
    """
    return new_error(action, message, STATUS_CODES[name], cause, payload)


new_bad_request_error = _status_builder("bad_request", STATUS_CODES["bad_request"])
new_unauthorized_error = _status_builder("unauthorized", STATUS_CODES["unauthorized"])
new_payment_required_error = _status_builder(
    "payment_required", STATUS_CODES["payment_required"]
)
new_forbidden_error = _status_builder("forbidden", STATUS_CODES["forbidden"])
new_not_found_error = _status_builder("not_found", STATUS_CODES["not_found"])
new_unprocessable_entity_error = _status_builder(
    "unprocessable_entity", STATUS_CODES["unprocessable_entity"]
)
new_internal_server_error = _status_builder("internal_server", STATUS_CODES["internal_server"])
new_not_implemented_error = _status_builder("not_implemented", STATUS_CODES["not_implemented"])
new_bad_gateway_error = _status_builder("bad_gateway", STATUS_CODES["bad_gateway"])
new_service_unavailable_error = _status_builder(
    "service_unavailable", STATUS_CODES["service_unavailable"]
)
new_gateway_timeout_error = _status_builder("gateway_timeout", STATUS_CODES["gateway_timeout"])
