"""Handler result types understood by the idempotency filter.

Protected endpoints return one of these Starlette responses. Each keeps the
data it was built from (route name, route values, value), so the post-phase
can store a description of the result instead of its rendered bytes, and the
pre-phase can rebuild an equivalent response later.

The set is closed:

- ``CreatedAtRouteResponse``: 201 plus the route serving the new resource
- ``ObjectResponse`` and its subclasses: a JSON payload with a status code
- ``StatusCodeResponse`` and its subclasses: a bare status code

Any other response class is rejected at capture time.

Examples:
    Returning a created resource from a FastAPI endpoint::

        @app.post("/orders")
        async def create_order(order: OrderIn) -> CreatedAtRouteResponse:
            saved = repository.add(order)
            return CreatedAtRouteResponse(
                route_name="GetOrder",
                route_values={"order_id": saved.id},
                value=saved,
            )
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import TypeAdapter
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import NoMatchFound

from idempotent_api.observability.logging import get_logger

logger = get_logger(__name__)

_json_values: TypeAdapter[Any] = TypeAdapter(Any)

ObjectResponseT = TypeVar("ObjectResponseT", bound=type["ObjectResponse"])


def to_json_value(value: Any) -> Any:
    """Convert a handler value (models, dataclasses, dates...) to plain JSON data.

    Example:
        >>> from datetime import date
        >>> to_json_value({"day": date(2024, 1, 2)})
        {'day': '2024-01-02'}
    """
    return _json_values.dump_python(value, mode="json")


class ObjectResponse(JSONResponse):
    """A JSON payload response.

    Subclasses fix the default status code. They must stay constructible from
    the value alone so a cached entry can rebuild them.

    Attributes:
        value: The payload, normalized to plain JSON data.
    """

    default_status_code = 200

    def __init__(
        self,
        value: Any = None,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.value = to_json_value(value)
        super().__init__(
            content=self.value,
            status_code=self.default_status_code if status_code is None else status_code,
            headers=headers,
        )


class OkObjectResponse(ObjectResponse):
    default_status_code = 200


class AcceptedObjectResponse(ObjectResponse):
    default_status_code = 202


class BadRequestObjectResponse(ObjectResponse):
    default_status_code = 400


class NotFoundObjectResponse(ObjectResponse):
    default_status_code = 404


class ConflictObjectResponse(ObjectResponse):
    default_status_code = 409


class UnprocessableEntityObjectResponse(ObjectResponse):
    default_status_code = 422


class CreatedAtRouteResponse(ObjectResponse):
    """A 201 response pointing at the route that serves the created resource.

    Attributes:
        route_name: Name of the route serving the resource.
        route_values: Path parameters of that route, as strings.
        value: The created resource.
    """

    default_status_code = 201

    def __init__(
        self,
        route_name: str,
        route_values: Mapping[str, Any] | None = None,
        value: Any = None,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.route_name = route_name
        self.route_values = {name: str(v) for name, v in (route_values or {}).items()}
        super().__init__(value, status_code=status_code, headers=headers)

    def resolve_location(self, request: Request) -> None:
        """Set the Location header from the named route, unless already set.

        An unknown route name leaves the header unset and logs a warning.
        """
        if "location" in self.headers:
            return
        try:
            url = request.url_for(self.route_name, **self.route_values)
        except NoMatchFound:
            logger.warning(
                "results.location_unresolved",
                route_name=self.route_name,
                route_values=self.route_values,
            )
            return
        self.headers["location"] = str(url)


class StatusCodeResponse(Response):
    """A response without a body."""

    default_status_code = 200

    def __init__(
        self,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=self.default_status_code if status_code is None else status_code,
            headers=headers,
        )


class OkResponse(StatusCodeResponse):
    default_status_code = 200


class NoContentResponse(StatusCodeResponse):
    default_status_code = 204


class NotFoundResponse(StatusCodeResponse):
    default_status_code = 404


# Object response types that can be rebuilt from a single value,
# keyed by the class name stored in cache entries.
OBJECT_RESPONSE_TYPES: dict[str, type[ObjectResponse]] = {
    cls.__name__: cls
    for cls in (
        ObjectResponse,
        OkObjectResponse,
        AcceptedObjectResponse,
        BadRequestObjectResponse,
        NotFoundObjectResponse,
        ConflictObjectResponse,
        UnprocessableEntityObjectResponse,
    )
}


def register_object_response(cls: ObjectResponseT) -> ObjectResponseT:
    """Register an application ObjectResponse subclass for replay.

    Use as a class decorator. Unregistered subclasses still replay, as a
    generic ObjectResponse with the original status code. Entries record the
    class name only, so two different classes cannot share a name.

    Example:
        >>> @register_object_response
        ... class PaymentRequiredResponse(ObjectResponse):
        ...     default_status_code = 402
        >>> "PaymentRequiredResponse" in OBJECT_RESPONSE_TYPES
        True

    Raises:
        TypeError: cls is not a single-value ObjectResponse
        ValueError: A different class is already registered under the name
    """
    if not issubclass(cls, ObjectResponse) or issubclass(cls, CreatedAtRouteResponse):
        raise TypeError(f"{cls.__name__} is not a single-value ObjectResponse")
    registered = OBJECT_RESPONSE_TYPES.get(cls.__name__)
    if registered is not None and registered is not cls:
        raise ValueError(
            f"{cls.__module__}.{cls.__qualname__} clashes with registered "
            f"{registered.__module__}.{registered.__qualname__}"
        )
    OBJECT_RESPONSE_TYPES[cls.__name__] = cls
    return cls
