"""Source templates for generated packages.

The status dispatch of an operation is emitted once; whether a status
yields ``parse()`` or ``parsed`` is decided at runtime by
``build_validated_response`` from the config in effect for that call.
"""

import json
from pathlib import Path

from openapi_craft.generator.responses import ResponseInfo

SUPPORT_MODULE_PATH = Path(__file__).parent.parent / "runtime.py"

INDENT = "    "


def render_support_module() -> str:
    """Source of the emitted config.py."""
    return SUPPORT_MODULE_PATH.read_text(encoding="utf-8")


def render_package_init(title: str | None = None) -> str:
    summary = " ".join(title.split()).replace('"', '\\"') if title else "Generated API"
    return f'"""{summary} package."""\n'


def status_value(status_code: str) -> str:
    return json.dumps(status_code) if status_code == "default" else status_code


def _decode_expression(info: ResponseInfo) -> str:
    strategy = info.parsing_strategy
    if strategy.is_json_like and not strategy.requires_runtime_content_type_check:
        return "parse_json_body(response)"
    return "parse_response_body(response)"


def render_response_handler(info: ResponseInfo, response_map_name: str) -> list[str]:
    """Statements returning the success object for one declared status."""
    status = status_value(info.status_code)
    if info.has_schema:
        return [
            f"data = {_decode_expression(info)}",
            f"return build_validated_response({status}, data, response, "
            f"{response_map_name}[{json.dumps(info.status_code)}], config)",
        ]
    data = _decode_expression(info) if info.content_type else "None"
    return [f"return ApiResponse(status={status}, data={data}, response=response)"]


def render_response_handlers(responses: list[ResponseInfo], response_map_name: str) -> str:
    """Status dispatch: numeric statuses ascending, "default" as the fall-through."""
    lines: list[str] = []
    fallback = ["return unexpected_response(response)"]
    for info in responses:
        handler = render_response_handler(info, response_map_name)
        if info.status_code == "default":
            fallback = handler
            continue
        lines.append(f"if response.status_code == {info.status_code}:")
        lines.extend(f"{INDENT}{statement}" for statement in handler)
    lines.extend(fallback)
    return "\n".join(f"{INDENT}{line}" for line in lines)
