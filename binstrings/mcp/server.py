"""MCP server setup, tool decorator, and validation helpers."""
import copy
import functools
import json

from typing import Any, Optional

from binstrings.config import (
    state, logger, FastMCP, Context,
    MAX_MCP_RESPONSE_SIZE_BYTES,
)

# --- MCP Server Setup ---
mcp_server = FastMCP("BinStringsMCP")
_raw_tool_decorator = mcp_server.tool()


def tool_decorator(func):
    """MCP tool decorator that records activity before each call."""
    @functools.wraps(func)
    async def _with_activity(*args, **kwargs):
        state.touch()
        return await func(*args, **kwargs)
    return _raw_tool_decorator(_with_activity)

# --- MCP Feedback Helpers ---

def _json_size(data: Any) -> int:
    return len(json.dumps(data, ensure_ascii=False).encode('utf-8'))


async def _check_mcp_response_size(
    ctx: Context,
    data_to_return: Any,
    tool_name: str,
    limit_param_info: Optional[str] = None
) -> Any:
    """
    Size guard: responses over the 64KB limit have their largest list shrunk
    (up to 5 passes) until they fit, with a ``_truncation_warning`` added.
    ``count`` keys are left untouched so the caller still sees the full total.
    """
    data_size_bytes = 0
    try:
        data_size_bytes = _json_size(data_to_return)
        if data_size_bytes <= MAX_MCP_RESPONSE_SIZE_BYTES:
            return data_to_return

        # Leave room for the warning message
        target_size = MAX_MCP_RESPONSE_SIZE_BYTES - 4096
        await ctx.warning(f"Response for '{tool_name}' was {data_size_bytes/1024:.1f}KB. Auto-truncating to fit limits.")

        # Deep copy so cached reports are never mutated
        modified_data = copy.deepcopy(data_to_return)

        for _ in range(5):
            current_size = _json_size(modified_data)
            if current_size <= target_size:
                break
            ratio = (target_size / current_size) * 0.9

            if isinstance(modified_data, list):
                old_len = len(modified_data)
                modified_data = modified_data[:max(1, int(old_len * ratio))]
                continue
            if not isinstance(modified_data, dict):
                break

            list_keys = [k for k, v in modified_data.items() if isinstance(v, list) and v]
            if not list_keys:
                break
            largest_key = max(list_keys, key=lambda k: _json_size(modified_data[k]))
            items = modified_data[largest_key]
            new_len = max(1, int(len(items) * ratio))
            if new_len >= len(items):
                break
            modified_data[largest_key] = items[:new_len]
            modified_data["_truncation_warning"] = (
                f"Data in '{largest_key}' truncated from {len(items)} to {new_len} items to fit "
                f"{MAX_MCP_RESPONSE_SIZE_BYTES // 1024}KB limit. Narrow the request with {limit_param_info or 'the limit parameter'}."
            )

        final_size = _json_size(modified_data)
        if final_size > MAX_MCP_RESPONSE_SIZE_BYTES:
            preview_bytes = json.dumps(modified_data, ensure_ascii=False).encode('utf-8')[:target_size // 2]
            preview = preview_bytes.decode('utf-8', errors='ignore')
            modified_data = {
                "data_preview": preview,
                "_truncation_warning": f"Response could not be structurally reduced. Converted to truncated string preview ({final_size} bytes -> {len(preview)} bytes)."
            }
        return modified_data

    except Exception as e:
        # Never crash the server over an oversized response
        await ctx.error(f"Auto-truncation failed: {e}")
        logger.error(f"MCP: Truncation logic failed: {e}", exc_info=True)
        return {
            "error": "Response too large",
            "message": f"The data generated was {data_size_bytes} bytes (Limit: {MAX_MCP_RESPONSE_SIZE_BYTES}). Auto-truncation failed.",
            "suggestion": limit_param_info or "Reduce limit parameter significantly."
        }
