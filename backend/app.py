"""Flask API for construction set build time estimates."""

from __future__ import annotations

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from estimator import BuildRequest, estimate

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # The workflow engine calls in from another origin


@app.route("/estimate", methods=["POST"])
def estimate_endpoint():
    """Estimate build hours for one request object or an array of them.

    ``estimatedHours`` is sent as a decimal string such as ``"18.29"`` so it
    always carries exactly two fractional digits; JSON numbers would drop
    trailing zeros (``1.00`` becomes ``1``).
    """

    payload = request.get_json(silent=True)

    if isinstance(payload, dict):
        response = estimate([BuildRequest.from_dict(payload)])[0]
        return jsonify(response.to_dict())

    if not isinstance(payload, list):
        return jsonify({"error": "Request body must be a JSON object or array."}), 400
    if not all(isinstance(item, dict) for item in payload):
        return jsonify({"error": "Every item in the array must be a JSON object."}), 400

    responses = estimate(BuildRequest.from_dict(item) for item in payload)
    failed = sum(1 for item in responses if not item.ok)
    logger.info("Estimated batch of %d requests (%d failed)", len(responses), failed)
    return jsonify([item.to_dict() for item in responses])


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Set USE_HTTPS=1 to enable a self-signed HTTPS cert for local testing.
    use_https = os.getenv("USE_HTTPS") == "1"
    ssl_context = "adhoc" if use_https else None
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", 5000))
    app.run(host=host, port=port, debug=False, ssl_context=ssl_context)
