"""Tests for handler result types and their capture into descriptors."""

import json
from datetime import date

import pytest
from pydantic import BaseModel
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse

from idempotent_api.core.capture import capture_entry, describe_result
from idempotent_api.exceptions import UnsupportedResultTypeError
from idempotent_api.models import CreatedAtRouteDescriptor, ObjectDescriptor, StatusOnlyDescriptor
from idempotent_api.results import (
    OBJECT_RESPONSE_TYPES,
    CreatedAtRouteResponse,
    NoContentResponse,
    NotFoundObjectResponse,
    ObjectResponse,
    OkObjectResponse,
    StatusCodeResponse,
    register_object_response,
)


class Order(BaseModel):
    id: int
    item: str
    qty: int


class TestResultTypes:
    """Tests for the response classes themselves."""

    def test_object_response_renders_json(self) -> None:
        response = OkObjectResponse({"id": 1})

        assert response.status_code == 200
        assert json.loads(response.body) == {"id": 1}
        assert response.headers["content-type"] == "application/json"

    def test_value_is_normalized_to_json_data(self) -> None:
        response = ObjectResponse({"order": Order(id=1, item="X", qty=2), "day": date(2024, 1, 2)})

        assert response.value == {"order": {"id": 1, "item": "X", "qty": 2}, "day": "2024-01-02"}

    def test_explicit_status_overrides_default(self) -> None:
        assert NotFoundObjectResponse({"detail": "gone"}).status_code == 404
        assert NotFoundObjectResponse({"detail": "gone"}, status_code=410).status_code == 410

    def test_created_at_route_response(self) -> None:
        response = CreatedAtRouteResponse("GetOrder", {"order_id": 1}, Order(id=1, item="X", qty=2))

        assert response.status_code == 201
        assert response.route_name == "GetOrder"
        assert response.route_values == {"order_id": "1"}
        assert json.loads(response.body) == {"id": 1, "item": "X", "qty": 2}

    def test_status_code_response_has_no_body(self) -> None:
        response = NoContentResponse()

        assert response.status_code == 204
        assert response.body == b""

    def test_register_object_response(self) -> None:
        @register_object_response
        class PaymentRequiredObjectResponse(ObjectResponse):
            default_status_code = 402

        assert OBJECT_RESPONSE_TYPES["PaymentRequiredObjectResponse"] is PaymentRequiredObjectResponse

    def test_register_rejects_a_clashing_name(self) -> None:
        @register_object_response
        class GoneObjectResponse(ObjectResponse):
            default_status_code = 410

        def other_module_gone():
            class GoneObjectResponse(ObjectResponse):
                default_status_code = 410

            return GoneObjectResponse

        with pytest.raises(ValueError, match="clashes with registered"):
            register_object_response(other_module_gone())

        assert OBJECT_RESPONSE_TYPES["GoneObjectResponse"] is GoneObjectResponse

    def test_register_rejects_a_builtin_name(self) -> None:
        class NotFoundObjectResponse(ObjectResponse):
            default_status_code = 404

        with pytest.raises(ValueError):
            register_object_response(NotFoundObjectResponse)

    def test_register_same_class_twice(self) -> None:
        register_object_response(OkObjectResponse)

        assert OBJECT_RESPONSE_TYPES["OkObjectResponse"] is OkObjectResponse

    def test_register_rejects_non_object_responses(self) -> None:
        with pytest.raises(TypeError):
            register_object_response(NoContentResponse)  # type: ignore[arg-type]

        with pytest.raises(TypeError):
            register_object_response(CreatedAtRouteResponse)


class TestDescribeResult:
    """Tests for the closed match over result types."""

    def test_created_at_route(self) -> None:
        response = CreatedAtRouteResponse("GetOrder", {"order_id": "1"}, {"id": 1})

        assert describe_result(response) == CreatedAtRouteDescriptor(
            route_name="GetOrder",
            route_values={"order_id": "1"},
            value={"id": 1},
        )

    def test_object_records_concrete_type(self) -> None:
        descriptor = describe_result(NotFoundObjectResponse({"detail": "gone"}))

        assert descriptor == ObjectDescriptor(
            value={"detail": "gone"},
            declared_result_type="NotFoundObjectResponse",
        )

    def test_status_only(self) -> None:
        assert describe_result(StatusCodeResponse(202)) == StatusOnlyDescriptor()

    @pytest.mark.parametrize(
        "response",
        [
            JSONResponse({"id": 1}),
            PlainTextResponse("ok"),
            HTMLResponse("<p>ok</p>"),
        ],
    )
    def test_unsupported_responses(self, response) -> None:
        with pytest.raises(UnsupportedResultTypeError) as exc_info:
            describe_result(response)

        assert exc_info.value.result_type == type(response).__name__


class TestCaptureEntry:
    """Tests for building cache entries from responses."""

    def test_captures_status_content_type_and_headers(self) -> None:
        response = CreatedAtRouteResponse("GetOrder", {"order_id": "1"}, {"id": 1})
        response.headers["location"] = "http://testserver/orders/1"
        response.headers.append("x-audit", "a")
        response.headers.append("x-audit", "b")

        entry = capture_entry(response, "f" * 64)

        assert entry.request_fingerprint == "f" * 64
        assert entry.response_status_code == 201
        assert entry.response_content_type == "application/json"
        assert entry.response_headers["location"] == ["http://testserver/orders/1"]
        assert entry.response_headers["x-audit"] == ["a", "b"]
        assert entry.result.kind == "created_at_route"

    def test_status_only_has_no_content_type(self) -> None:
        entry = capture_entry(NoContentResponse(), "f" * 64)

        assert entry.response_status_code == 204
        assert entry.response_content_type is None

    def test_unsupported_response_builds_nothing(self) -> None:
        with pytest.raises(UnsupportedResultTypeError):
            capture_entry(PlainTextResponse("ok"), "f" * 64)
