"""OpenAPI / Swagger import.

Converts OpenAPI 3.x and Swagger 2.0 documents into a ContractSurface:
one operation per path and method, with bindings derived from each
parameter's location.
"""

import logging
import re
from pathlib import Path

from rest_contract.contract.base import (
    BodyBinding,
    BodySerializationMethod,
    ContractSurface,
    HeaderBinding,
    Operation,
    Parameter,
    PathBinding,
    QueryBinding,
    RequestDeclaration,
    ResultKind,
)
from rest_contract.contract.loader import read_document
from rest_contract.contract.validator import is_absolute_uri

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded",)


def snake_case(name: str) -> str:
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    name = re.sub(r"[\W_]+", "_", name).strip("_").lower()
    if not name or name[0].isdigit():
        name = "_" + name
    return name


def import_openapi(file_path: Path, name: str | None = None) -> ContractSurface:
    """Parse an OpenAPI/Swagger file into a ContractSurface."""
    doc = read_document(file_path)
    title = (doc.get("info") or {}).get("title") or file_path.stem
    base_address, base_path = _servers(doc)

    operations: list[Operation] = []
    seen: set[str] = set()
    for path, methods in (doc.get("paths") or {}).items():
        shared = methods.get("parameters", [])
        for method, operation in methods.items():
            if method.upper() not in METHODS:
                continue
            # rooted call paths skip the base path
            op_path = path.lstrip("/") if base_path else path
            op = _operation(doc, op_path, method, operation, shared)
            op.name = _unique(op.name, seen)
            operations.append(op)

    surface = ContractSurface(
        name=name or re.sub(r"\W", "", title.title()) or "Api",
        operations=operations,
        base_address=base_address,
        base_path=base_path,
    )
    logger.debug("Imported %d operations from %s", len(operations), file_path)
    return surface


def _servers(doc: dict) -> tuple[str | None, str | None]:
    if "swagger" in doc:
        host = doc.get("host")
        base_path = doc.get("basePath")
        if not host:
            return None, base_path
        scheme = (doc.get("schemes") or ["https"])[0]
        return f"{scheme}://{host}{base_path or ''}", None

    servers = doc.get("servers") or []
    if not servers:
        return None, None
    url = servers[0].get("url", "")
    for var, variable in (servers[0].get("variables") or {}).items():
        url = url.replace("{" + var + "}", str(variable.get("default", "")))
    if is_absolute_uri(url):
        return url, None
    return None, url or None


def _unique(name: str, seen: set[str]) -> str:
    candidate, n = name, 2
    while candidate in seen:
        candidate = f"{name}_{n}"
        n += 1
    seen.add(candidate)
    return candidate


def _resolve(doc: dict, obj: dict) -> dict:
    """Follow a local ``$ref`` such as '#/components/parameters/Limit'."""
    ref = obj.get("$ref") if isinstance(obj, dict) else None
    if not ref or not ref.startswith("#/"):
        return obj
    target = doc
    for part in ref[2:].split("/"):
        target = target[part.replace("~1", "/").replace("~0", "~")]
    return target


def _operation(doc: dict, path: str, method: str, operation: dict, shared: list) -> Operation:
    params = {}
    for raw in list(shared) + list(operation.get("parameters", [])):
        p = _resolve(doc, raw)
        params[(p.get("in"), p["name"])] = p  # operation level overrides path level

    parameters: list[Parameter] = []
    names: set[str] = set()
    has_form = False
    for (location, original), p in params.items():
        if location == "path":
            binding = PathBinding(name=original)
        elif location == "query":
            binding = QueryBinding(name=original)
        elif location == "header":
            binding = HeaderBinding(name=original)
        elif location == "body":
            binding = BodyBinding()
        elif location == "formData":
            has_form = True
            continue
        else:
            # cookies are left to the transport
            continue
        py_name = snake_case(original)
        if py_name in names:
            py_name = f"{py_name}_{location}"
        names.add(py_name)
        schema = p.get("schema") or p
        parameters.append(Parameter(name=py_name, bindings=[binding], annotation=schema.get("type")))

    body = _request_body(doc, operation.get("requestBody"))
    if body is not None:
        parameters.append(Parameter(name=_unique("body", names), bindings=[body]))
    elif has_form:
        parameters.append(Parameter(
            name=_unique("form", names),
            bindings=[BodyBinding(serialization=BodySerializationMethod.URL_ENCODED)],
            annotation="object",
        ))

    name = operation.get("operationId") or f"{method}_{path}"
    return Operation(
        name=snake_case(name),
        requests=[RequestDeclaration(method=method, path=path)],
        parameters=parameters,
        returns=_returns(doc, operation.get("responses") or {}),
    )


def _request_body(doc: dict, body: dict | None) -> BodyBinding | None:
    if not body:
        return None
    content = _resolve(doc, body).get("content", {})
    if any(ct in content for ct in FORM_CONTENT_TYPES):
        return BodyBinding(serialization=BodySerializationMethod.URL_ENCODED)
    return BodyBinding()


def _returns(doc: dict, responses: dict) -> ResultKind:
    for status_code, resp in responses.items():
        if not str(status_code).startswith("2"):
            continue
        resp = _resolve(doc, resp)
        content = resp.get("content")
        if content:
            if any("json" in ct for ct in content):
                return ResultKind.DESERIALIZED
            return ResultKind.RAW_STRING
        if "schema" in resp:
            return ResultKind.DESERIALIZED
    return ResultKind.NONE
