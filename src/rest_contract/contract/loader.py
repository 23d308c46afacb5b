"""Contract documents: YAML or JSON files describing one contract surface.

A document is the ContractSurface model itself, with a few shorthands:

    name: PetStore
    base_address: https://petstore.example.com/v1
    headers: {Accept: application/json}
    status_code_policy: allow_any
    properties:
      - name: api_key
        header: X-Api-Key
    operations:
      - name: get_pet
        get: pets/{pet_id}
        returns: deserialized
        parameters:
          - name: pet_id
            path: true
          - name: fields
            query: {name: f}
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from rest_contract.contract.base import ContractSurface

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options", "trace")

ROLES = ("header", "path", "query", "raw_query", "query_map", "body", "cancellation", "request_property")


def read_document(file_path: Path) -> Any:
    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_contract(file_path: Path) -> ContractSurface:
    """Read a contract document into a ContractSurface."""
    data = read_document(file_path)
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} does not contain a contract document")
    data.setdefault("name", file_path.stem)
    surface = parse_contract(data)
    logger.debug("Loaded contract %s with %d operations from %s", surface.name, len(surface.operations), file_path)
    return surface


def parse_contract(data: dict) -> ContractSurface:
    data = dict(data)
    data["headers"] = _headers(data.get("headers"))

    policy = data.pop("status_code_policy", None)
    if policy is not None:
        data.setdefault("status_code_policies", []).append({"policy": policy})

    data["properties"] = [_member(p) for p in data.get("properties") or []]
    data["operations"] = [_operation(op) for op in data.get("operations") or []]
    return ContractSurface.model_validate(data)


def _headers(headers: Any) -> list[dict]:
    if not headers:
        return []
    if isinstance(headers, dict):
        return [{"name": name, "value": value} for name, value in headers.items()]
    return list(headers)


def _operation(data: dict) -> dict:
    data = dict(data)
    requests = list(data.get("requests") or [])
    for method in HTTP_METHODS:
        if method in data:
            requests.append({"method": method, "path": data.pop(method)})
    if "request" in data:
        requests.append(data.pop("request"))
    data["requests"] = requests
    data["headers"] = _headers(data.get("headers"))
    data["parameters"] = [_member(p) for p in data.get("parameters") or []]
    return data


def _member(data: dict | str) -> dict:
    """Expand role shorthands (``path: true``, ``header: X-Name``) into bindings."""
    if isinstance(data, str):
        return {"name": data}
    data = dict(data)
    bindings = list(data.get("bindings") or [])
    for role in ROLES:
        if role not in data:
            continue
        options = data.pop(role)
        if options is False:
            continue
        if options is None or options is True:
            options = {}
        elif isinstance(options, str):
            options = {"key": options} if role == "request_property" else {"name": options}
        bindings.append({"role": role, **options})
    data["bindings"] = bindings
    return data
