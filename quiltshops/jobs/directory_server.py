"""HTTP entrypoint for extracting and building quilt shop directories."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from typing import Any, Dict

from flask import Flask, jsonify, request

from quiltshops.core.config import get_settings
from quiltshops.core.regions import SOURCE_HTML, get_region, policy_for_region
from quiltshops.etl.html_blocks import extract_from_html
from quiltshops.etl.state_machine import extract_from_text
from quiltshops.jobs.build_directory import build_region, geocode_region

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
_executor = ThreadPoolExecutor(max_workers=2)

_RECORD_FIELDS = ("name", "address", "city", "phone", "email", "website")

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "server_port_config": getattr(settings, "server_port", None),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/extract")
def extract_records() -> Any:
    """
    Extract shop records from posted source text.
    Required JSON fields: region, and "html" for HTML regions or "text" for PDF regions.
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    try:
        region = get_region(str(payload.get("region") or ""))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    source_field = "html" if region.source_kind == SOURCE_HTML else "text"
    source = payload.get(source_field)
    if not isinstance(source, str) or not source.strip():
        return jsonify({"error": f"{source_field} must be a non-empty string"}), 400

    policy = policy_for_region(region)
    if region.source_kind == SOURCE_HTML:
        records = extract_from_html(source, policy)
    else:
        records = extract_from_text(source, policy)

    items = [{field: asdict(record)[field] for field in _RECORD_FIELDS} for record in records]
    return jsonify({"data": {"region": region.code, "count": len(items), "items": items}}), 200


@app.post("/build")
def enqueue_build() -> Any:
    """
    Enqueue a directory build.
    Required JSON fields: region
    Optional: geocode (bool), append (bool)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    try:
        region = get_region(str(payload.get("region") or ""))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    job_args = dict(
        region_code=region.code,
        append=bool(payload.get("append", False)),
        geocode=bool(payload.get("geocode", False)),
    )

    logger.info("Queueing directory build: %s", job_args)
    _executor.submit(_run_job_safe, job_args)

    return jsonify({"data": {"status": "queued", "region": region.code}}), 202


# ---------- Internals ----------


def _run_job_safe(job_args: Dict[str, Any]) -> None:
    try:
        build_region(job_args["region_code"], append=job_args["append"])
        if job_args["geocode"]:
            geocode_region(job_args["region_code"])
    except Exception as exc:  # noqa: BLE001
        logger.exception("Directory build failed: %s", exc)


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().server_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
