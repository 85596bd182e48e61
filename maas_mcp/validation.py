"""
Parameter and payload validation.

Both functions are pure: they never log, never audit and never touch the
network. The resource pipeline decides what to record when they raise.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, TypeAdapter, ValidationError

from maas_mcp.errors import ErrorCode, MaasApiError
from maas_mcp.uri_patterns import extract_params_from_uri


def _schema_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return exc.errors(include_url=False, include_context=False, include_input=False)


def extract_and_validate_params(
    uri: str,
    pattern: str,
    schema: type[BaseModel],
    resource_label: str,
    extra: Mapping[str, str] | None = None,
) -> BaseModel:
    """Match ``uri`` against ``pattern`` and validate the result with ``schema``.

    ``extra`` carries query parameters, merged under the path parameters so a
    query key can never shadow an id taken from the path.
    """
    params: dict[str, str] = dict(extra or {})
    params.update(extract_params_from_uri(uri, pattern))
    try:
        return schema.model_validate(params)
    except ValidationError as exc:
        raise MaasApiError(
            f"Invalid parameters for {resource_label} request",
            400,
            ErrorCode.INVALID_PARAMETERS,
            {"schema_errors": _schema_errors(exc)},
        ) from exc


def validate_resource_data(
    payload: Any,
    schema: type[BaseModel],
    resource_label: str,
    resource_id: str | None = None,
) -> dict[str, Any]:
    """Validate one entity and return it as plain JSON data.

    Only the fields present in ``payload`` are emitted, so a valid payload
    comes back unchanged apart from type coercion.
    """
    try:
        model = schema.model_validate(payload)
    except ValidationError as exc:
        raise _validation_failure(exc, resource_label, resource_id) from exc
    return model.model_dump(mode="json", exclude_unset=True)


def validate_resource_list(
    payload: Any,
    schema: type[BaseModel],
    resource_label: str,
) -> list[dict[str, Any]]:
    """Validate an array of entities. One bad element fails the whole list."""
    if not isinstance(payload, list):
        raise MaasApiError(
            f"Invalid response format: Expected an array of {resource_label}",
            500,
            ErrorCode.INVALID_RESPONSE_FORMAT,
        )
    adapter = TypeAdapter(list[schema])  # type: ignore[valid-type]
    try:
        models = adapter.validate_python(payload)
    except ValidationError as exc:
        raise _validation_failure(exc, resource_label, None) from exc
    return [m.model_dump(mode="json", exclude_unset=True) for m in models]


def _validation_failure(
    exc: ValidationError, resource_label: str, resource_id: str | None
) -> MaasApiError:
    id_message = f" for '{resource_id}'" if resource_id else ""
    return MaasApiError(
        f"{resource_label} data validation failed{id_message}: "
        "The MAAS API returned data in an unexpected format",
        422,
        ErrorCode.VALIDATION_ERROR,
        {"schema_errors": _schema_errors(exc)},
    )
