import os
import sys

import functions_framework
from flask import Flask, Request, Response, jsonify, make_response, request

from prompt_store import (
    GCSPromptStore,
    PromptStore,
    build_storage_key,
    decode_payload,
    serialize_payload,
)

BUCKET_NAME = os.environ.get("BUCKET_NAME", "llm-visibility")
KEY_PREFIX = os.environ.get("KEY_PREFIX", "prompt-data")

ROUTE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

default_store = GCSPromptStore(BUCKET_NAME)


def handle_request(req: Request, store: PromptStore) -> Response:
    """Decode the base64 JSON in ``data`` and save it to the bucket."""
    if req.method == "OPTIONS":
        response = make_response("", 204)
    else:
        response = _save(req, store)
    response.headers.update(CORS_HEADERS)
    return response


def _save(req: Request, store: PromptStore) -> Response:
    try:
        body = req.get_json(silent=True)
        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            return make_response(jsonify({"error": "No data provided"}), 400)

        payload = decode_payload(data)
        file_name = build_storage_key(payload, prefix=KEY_PREFIX)
        store.put(file_name, serialize_payload(payload), "application/json")

        print(f"Saved: {file_name}")
        return make_response(jsonify({"success": True, "file": file_name}), 200)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return make_response(jsonify({"error": str(e)}), 500)


def create_app(store=None):
    app = Flask(__name__)
    store = store or default_store

    # Every method reaches the handler, as on Cloud Functions.
    @app.route("/", methods=ROUTE_METHODS)
    def save_prompt():
        return handle_request(request, store)

    return app


app = create_app()


@functions_framework.http
def save_prompt_data(request: Request) -> Response:
    return handle_request(request, default_store)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
