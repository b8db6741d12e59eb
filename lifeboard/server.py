#!/usr/bin/env python3
"""
Lifeboard API Server
--------------------
JSON API over the board service, backed by the local SQLite store.

Usage:
    lifeboard-server --port 3000 --db ~/.local/share/lifeboard/lifeboard.db

API:
    GET    /api/projects[?include_archived=1]  → { data: [project] }
    POST   /api/projects                       → { data: project }   (201)
    GET    /api/projects/<id>                  → { data: project }
    PATCH  /api/projects/<id>                  → { data: project }
    DELETE /api/projects/<id>                  → { data: { id } }
    POST   /api/projects/<id>/archive          → { data: project }
    POST   /api/projects/reorder               body: [{ id, position }]
    GET    /api/projects/<id>/tasks            → { data: [task] }
    POST   /api/tasks                          → { data: task }      (201)
    GET    /api/tasks/<id>                     → { data: task }
    PATCH  /api/tasks/<id>                     → { data: task }
    DELETE /api/tasks/<id>                     → { data: { id } }
    POST   /api/tasks/<id>/move                body: { project_id, status, position }
    GET    /api/tasks/<id>/history             → { data: [transition] }

Errors:
    { error: { code, message, field? } }
    VALIDATION_ERROR 400 · NOT_FOUND 404 · STORE_ERROR 500
"""
import argparse
import logging
import sys
from pathlib import Path

from flask import Flask, jsonify, request

from .config import Config
from .errors import NotFound, StoreError, ValidationError
from .service import BoardService, build_service

logger = logging.getLogger(__name__)


def _error(code: str, message: str, status: int, **extra):
    body = {"code": code, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify({"error": body}), status


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def create_app(service: BoardService) -> Flask:
    """Build the Flask app around an already-wired service."""
    app = Flask(__name__)

    # ── Error mapping ────────────────────────────────────────────────────────

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _error("VALIDATION_ERROR", e.message, 400, field=e.field)

    @app.errorhandler(NotFound)
    def handle_not_found(e: NotFound):
        return _error("NOT_FOUND", str(e), 404)

    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        logger.error(f"Store error on {request.method} {request.path}: {e}")
        return _error("STORE_ERROR", str(e), 500)

    def payload():
        return request.get_json(force=True, silent=True)

    # ── Projects ─────────────────────────────────────────────────────────────

    @app.route("/api/projects", methods=["GET"])
    def list_projects():
        include_archived = _truthy(request.args.get("include_archived", ""))
        projects = service.list_projects(include_archived=include_archived)
        return jsonify({"data": [p.to_dict() for p in projects]})

    @app.route("/api/projects", methods=["POST"])
    def create_project():
        project = service.create_project(payload())
        return jsonify({"data": project.to_dict()}), 201

    @app.route("/api/projects/reorder", methods=["POST"])
    def reorder_projects():
        data = payload()
        order = data.get("order") if isinstance(data, dict) else data
        service.reorder_projects(order)
        return jsonify({"data": {"message": "Reordered"}})

    @app.route("/api/projects/<int:project_id>", methods=["GET"])
    def get_project(project_id):
        return jsonify({"data": service.get_project(project_id).to_dict()})

    @app.route("/api/projects/<int:project_id>", methods=["PATCH", "PUT"])
    def update_project(project_id):
        project = service.update_project(project_id, payload())
        return jsonify({"data": project.to_dict()})

    @app.route("/api/projects/<int:project_id>", methods=["DELETE"])
    def delete_project(project_id):
        service.delete_project(project_id)
        return jsonify({"data": {"success": True, "id": project_id}})

    @app.route("/api/projects/<int:project_id>/archive", methods=["POST"])
    def archive_project(project_id):
        return jsonify({"data": service.archive_project(project_id).to_dict()})

    @app.route("/api/projects/<int:project_id>/tasks", methods=["GET"])
    def list_tasks(project_id):
        tasks = service.list_tasks_by_project(project_id)
        return jsonify({"data": [t.to_dict() for t in tasks]})

    # ── Tasks ────────────────────────────────────────────────────────────────

    @app.route("/api/tasks", methods=["POST"])
    def create_task():
        task = service.create_task(payload())
        return jsonify({"data": task.to_dict()}), 201

    @app.route("/api/tasks/<int:task_id>", methods=["GET"])
    def get_task(task_id):
        return jsonify({"data": service.get_task(task_id).to_dict()})

    @app.route("/api/tasks/<int:task_id>", methods=["PATCH", "PUT"])
    def update_task(task_id):
        task = service.update_task(task_id, payload())
        return jsonify({"data": task.to_dict()})

    @app.route("/api/tasks/<int:task_id>", methods=["DELETE"])
    def delete_task(task_id):
        service.delete_task(task_id)
        return jsonify({"data": {"success": True, "id": task_id}})

    @app.route("/api/tasks/<int:task_id>/move", methods=["POST"])
    def move_task(task_id):
        data = payload()
        if isinstance(data, dict):
            data = {**data, "id": task_id}
        task = service.move_task(data)
        return jsonify({"data": task.to_dict()})

    @app.route("/api/tasks/<int:task_id>/history", methods=["GET"])
    def task_history(task_id):
        history = service.task_history(task_id)
        return jsonify({"data": [t.to_dict() for t in history]})

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "db": service.store.db_path})

    return app


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="Lifeboard API Server")
    parser.add_argument("--config", help="Path to lifeboard.yaml")
    parser.add_argument("--host", help="Bind address (default from config: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port (default from config: 3000)")
    parser.add_argument("--db", help="Path to the SQLite database (overrides LIFEBOARD_DB)")
    args = parser.parse_args(argv)

    cfg = Config.load(args.config)
    if args.db:
        cfg.db_path = str(Path(args.db).expanduser())
    host = args.host or cfg.host
    port = args.port or cfg.port

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s [lifeboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    service = build_service(cfg)
    app = create_app(service)
    logger.info(f"Serving on http://{host}:{port}")
    # One writer: the store connection is not shared across request threads
    app.run(host=host, port=port, debug=False, threaded=False)


if __name__ == "__main__":
    main()
