"""
Terraform Redaction - MCP Server for sanitizing Terraform documents

A local MCP (Model Context Protocol) server that strips secrets out of
Terraform state and plan JSON so that AI agents and upload tooling only ever
see filtered data.

Tools:
    - filter_state_file: Filter a state document
    - filter_plan_file: Filter a plan document
    - preview_filtering: Dry run, report what would be removed
    - create_filter_config: Write a starter project configuration file

Safety Constraints:
    - Files are only read and written locally; nothing is uploaded
    - Filtering cannot be disabled when the platform settings enforce it
    - Filtered output is written atomically or not at all
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from tf_redaction import (
    FilterError,
    PlatformFragment,
    PlatformPolicyCache,
    filter_plan,
    filter_state,
    resolve_policy,
)
from tf_redaction.models import load_document
from tf_redaction.platform import DEFAULT_CACHE_TTL_SECONDS
from tf_redaction.policy import write_config
from tf_redaction.report import (
    OUTPUT_FORMATS,
    build_json_report,
    log_verbose_omissions,
    render_text_report,
    verbose_omission_lines,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = FastMCP(
    "terraform-redaction",
    instructions="MCP Server for removing secrets from Terraform state and plan JSON"
)

PLATFORM_POLICY_ENV = "TF_REDACTION_PLATFORM_POLICY"
CACHE_TTL_ENV = "TF_REDACTION_POLICY_CACHE_TTL"

policy_cache = PlatformPolicyCache(
    ttl_seconds=float(os.getenv(CACHE_TTL_ENV, DEFAULT_CACHE_TTL_SECONDS))
)


def get_platform_fragment() -> Optional[PlatformFragment]:
    """Return the platform fragment configured in the environment, if any."""
    source = os.getenv(PLATFORM_POLICY_ENV)
    if not source:
        return None
    return policy_cache.get(source)


def _read_document(file_path: str) -> tuple[bytes, dict[str, Any]]:
    data = Path(file_path).read_bytes()
    try:
        document = json.loads(data)
    except ValueError:
        document = None
    return data, document if isinstance(document, dict) else {}


def _write_atomically(output_path: str, data: bytes) -> None:
    target = Path(output_path)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except Exception:
        os.unlink(tmp_name)
        raise


def _run_filter(kind: str, file_path: str, no_filter: bool, output_path: str) -> dict[str, Any]:
    resolved = resolve_policy(
        platform=get_platform_fragment(),
        disable_filtering=no_filter,
        start_dir=Path(file_path).resolve().parent,
    )
    logger.info(f"Filter config source: {resolved.source}")

    data = Path(file_path).read_bytes()

    if not resolved.filtering_enabled:
        logger.warning("Sensitive data filtering disabled")
        document = load_document(data, kind)
        if output_path:
            _write_atomically(output_path, data)
        response = {
            "status": "success",
            "file": file_path,
            "filtered": False,
            "message": "Sensitive data filtering disabled",
        }
        if not output_path:
            response["document"] = document
        return response

    filter_fn = filter_plan if kind == "plan" else filter_state
    result = filter_fn(data, resolved.policy)
    log_verbose_omissions(result)

    response = {
        "status": "success",
        "file": file_path,
        "filtered": True,
        "config_source": resolved.source,
        "summary": result.summary.to_dict(),
        "preview": verbose_omission_lines(result),
        "original_size": len(data),
        "filtered_size": len(result.filtered_json),
    }
    if output_path:
        _write_atomically(output_path, result.filtered_json)
        response["output_path"] = output_path
    else:
        response["document"] = result.filtered
    return response


@mcp.tool()
def filter_state_file(file_path: str, no_filter: bool = False, output_path: str = "") -> dict[str, Any]:
    """
    Remove sensitive values from a Terraform state JSON file.

    Args:
        file_path: Path to a state file (terraform.tfstate or
                   `terraform show -json` output).
        no_filter: Skip filtering. Refused when platform settings enforce
                   filtering.
        output_path: Where to write the filtered JSON. When empty the
                     filtered document is returned inline.

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - file: The input file
        - filtered: Whether filtering ran
        - config_source: "defaults" or the project config file used
        - summary: Resource/attribute totals and omission counts
        - preview: The first few omissions
        - document or output_path: The filtered result

    Example usage:
        filter_state_file("terraform.tfstate")
        filter_state_file("state.json", output_path="state.filtered.json")
    """
    try:
        return _run_filter("state", file_path, no_filter, output_path)

    except FilterError as e:
        return {"status": "error", "file": file_path, "message": str(e)}
    except OSError as e:
        return {"status": "error", "file": file_path, "message": f"File error: {e}"}
    except Exception as e:
        return {"status": "error", "file": file_path, "message": f"Unexpected error: {str(e)}"}


@mcp.tool()
def filter_plan_file(file_path: str, no_filter: bool = False, output_path: str = "") -> dict[str, Any]:
    """
    Remove sensitive values from a Terraform plan JSON file.

    Args:
        file_path: Path to `terraform show -json tfplan` output.
        no_filter: Skip filtering. Refused when platform settings enforce
                   filtering.
        output_path: Where to write the filtered JSON. When empty the
                     filtered document is returned inline.

    Returns:
        Same shape as filter_state_file.

    Example usage:
        filter_plan_file("tfplan.json")
    """
    try:
        return _run_filter("plan", file_path, no_filter, output_path)

    except FilterError as e:
        return {"status": "error", "file": file_path, "message": str(e)}
    except OSError as e:
        return {"status": "error", "file": file_path, "message": f"File error: {e}"}
    except Exception as e:
        return {"status": "error", "file": file_path, "message": f"Unexpected error: {str(e)}"}


@mcp.tool()
def preview_filtering(file_path: str, output_format: str = "text") -> dict[str, Any]:
    """
    Show what would be removed from a state or plan file without writing anything.

    Plan documents are recognised by their resource_changes field; anything
    else is treated as state.

    Args:
        file_path: Path to state or plan JSON.
        output_format: "text" for the grouped report, "json" for the full
                       omission list with policy provenance.

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - document_type: "state" or "plan"
        - report: Report text, or the structured report for "json"
    """
    if output_format not in OUTPUT_FORMATS:
        return {
            "status": "error",
            "file": file_path,
            "message": f"Unknown output format '{output_format}'. Use one of: {', '.join(OUTPUT_FORMATS)}"
        }

    try:
        data, document = _read_document(file_path)
        kind = "plan" if "resource_changes" in document else "state"

        resolved = resolve_policy(
            platform=get_platform_fragment(),
            start_dir=Path(file_path).resolve().parent,
        )
        filter_fn = filter_plan if kind == "plan" else filter_state
        result = filter_fn(data, resolved.policy)

        if output_format == "json":
            report: Any = build_json_report(result, resolved)
        else:
            report = render_text_report(result, resolved)

        return {
            "status": "success",
            "file": file_path,
            "document_type": kind,
            "report": report,
        }

    except FilterError as e:
        return {"status": "error", "file": file_path, "message": str(e)}
    except OSError as e:
        return {"status": "error", "file": file_path, "message": f"File error: {e}"}
    except Exception as e:
        return {"status": "error", "file": file_path, "message": f"Unexpected error: {str(e)}"}


@mcp.tool()
def create_filter_config(directory: str = ".", minimal: bool = False, force: bool = False) -> dict[str, Any]:
    """
    Create a .tf-redaction.yaml starter file.

    Args:
        directory: Where to create the file (usually the Terraform root).
        minimal: Write only the keys, without explanatory comments.
        force: Overwrite an existing file.

    Returns:
        A dictionary containing:
        - status: "success" or "error"
        - config_path: The file that was written
    """
    try:
        path = write_config(directory, full=not minimal, force=force)
        return {"status": "success", "config_path": str(path)}

    except FileExistsError as e:
        return {"status": "error", "message": f"{e}. Use force=True to overwrite"}
    except OSError as e:
        return {"status": "error", "message": f"File error: {e}"}


if __name__ == "__main__":
    # Run the MCP server using stdio transport
    mcp.run()
