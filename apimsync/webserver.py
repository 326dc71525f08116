"""
HTTP entry point mirroring the CLI operations.

    GET  /v1/apim/status
    POST /v1/apim/offramp   {"offramp": "azure|aws|apigee", "onlyNew": false}
    POST /v1/apim/onramp    {"onramp": "apihub"}
    POST /v1/apim/sync      {"offramp": "...", "onramp": "apihub"}

Credentials come from environment variables. Domain failures are reported as
``{"result": false, "message": ...}`` with status 200.
"""

import logging
import os
from typing import Mapping, Optional

from flask import Flask, jsonify, request

from apimsync import __version__, pipeline
from apimsync.config import data_dir
from apimsync.errors import ApimSyncError
from apimsync.store import LocalStore

DEFAULT_PORT = 8080


def create_app(store: Optional[LocalStore] = None,
               env: Optional[Mapping[str, str]] = None) -> Flask:
    app = Flask(__name__)
    env = os.environ if env is None else env
    store = store or LocalStore(data_dir(env=env))

    def _body():
        return request.get_json(silent=True) or {}

    def _run(operation, *args, **kwargs):
        try:
            report = operation(*args, **kwargs)
        except ValueError as e:
            return jsonify({"result": False, "message": str(e)}), 400
        except ApimSyncError as e:
            logging.error(f"Request to {request.path} failed: {e}")
            return jsonify({"result": False, "message": str(e)})
        for line in report.lines:
            logging.info(line)
        return jsonify(report.to_dict())

    @app.route("/v1/apim/status", methods=["GET"])
    def apim_status():
        statuses = pipeline.status(env)
        return jsonify({name: s.to_dict() for name, s in statuses.items()})

    @app.route("/v1/apim/offramp", methods=["POST"])
    def apim_offramp():
        body = _body()
        return _run(pipeline.offramp, body.get("offramp", ""), store, env=env,
                    only_new=bool(body.get("onlyNew", False)))

    @app.route("/v1/apim/onramp", methods=["POST"])
    def apim_onramp():
        body = _body()
        return _run(pipeline.onramp, body.get("onramp", ""), store, env=env)

    @app.route("/v1/apim/sync", methods=["POST"])
    def apim_sync():
        body = _body()
        return _run(pipeline.sync, body.get("offramp", ""), body.get("onramp", ""), store, env=env,
                    only_new=bool(body.get("onlyNew", False)))

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({"name": "Apimsync API", "version": __version__})

    return app


def start(port: int = DEFAULT_PORT, store: Optional[LocalStore] = None):
    app = create_app(store)
    print(f"🌐 Apimsync API at http://0.0.0.0:{port}")
    app.run(host="0.0.0.0", port=port, debug=False)
