"""
HTTP Microservice
=================
Flask-based HTTP API for the import pipeline.

The web backend posts the uploaded question paper (and optional answer key)
here and persists the returned question records itself. Each request runs a
fresh pipeline, so the service holds no state between calls.

Endpoints:
    POST   /api/parse         → Import a paper (multipart: paper, answer_key)
    GET    /api/health        → Health check
    GET    /api/info          → Parser version info
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge

from . import __version__
from .engine import ImportPipeline, ParserConfig

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    # Flask ships this key preset to None
    if app.config.get("MAX_CONTENT_LENGTH") is None:
        app.config["MAX_CONTENT_LENGTH"] = 50 * 1024 * 1024  # 50MB
    app.config.setdefault("LOG_LEVEL", "INFO")
    app.config.setdefault("PARALLEL_EXTRACTION", False)

    return app


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "prelims-parser",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Parser version and capability info."""
    return jsonify({
        "version": __version__,
        "engine": "PyMuPDF",
        "capabilities": [
            "text_extraction",
            "column_reconstruction",
            "question_segmentation",
            "bilingual_normalization",
            "answer_key_matching",
            "anomaly_detection",
        ],
        "supported_formats": ["pdf"],
        "max_upload_bytes": app.config.get("MAX_CONTENT_LENGTH"),
    })


# ─── Parse Endpoint ──────────────────────────────────────────────────────────


@app.route("/api/parse", methods=["POST"])
def parse_paper():
    """
    Import a question paper synchronously.

    Form fields:
        paper: Question paper PDF (required)
        answer_key: Answer key PDF (optional)
        line_tolerance, column_gap: Layout overrides (optional)

    Returns 200 with the ImportResult on success, 422 with the same
    structure when the import failed, 400 on a malformed request.
    """
    paper = request.files.get("paper")
    if paper is None or not paper.filename:
        return jsonify({"error": "Upload the question paper as 'paper'"}), 400

    key_file = request.files.get("answer_key")
    answer_key = None
    answer_key_name = ""
    if key_file is not None and key_file.filename:
        answer_key = key_file.read()
        answer_key_name = key_file.filename

    try:
        config = ParserConfig(
            line_tolerance=float(request.form.get("line_tolerance", 0.5)),
            column_gap=float(request.form.get("column_gap", 40.0)),
            parallel_extraction=bool(
                app.config.get("PARALLEL_EXTRACTION", False)
            ),
            log_level=app.config.get("LOG_LEVEL", "INFO"),
        )
    except ValueError as e:
        return jsonify({"error": f"Invalid layout parameter: {e}"}), 400

    try:
        pipeline = ImportPipeline(config)
        result = pipeline.run(
            paper.read(),
            answer_key,
            source_name=paper.filename,
            answer_key_name=answer_key_name,
        )
    except Exception as e:
        logger.exception(f"Unexpected error importing {paper.filename}")
        return jsonify({"error": str(e)}), 500

    status = 200 if result.succeeded else 422
    return jsonify(result.model_dump(mode="json")), status


@app.errorhandler(RequestEntityTooLarge)
def upload_too_large(e):
    return jsonify({
        "error": "Upload exceeds the maximum allowed size",
        "max_upload_bytes": app.config.get("MAX_CONTENT_LENGTH"),
    }), 413


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
