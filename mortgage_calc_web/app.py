import logging
import os
from uuid import uuid4

from flask import Flask, current_app, jsonify, request, session

from mortgage_calc.contracts import impacts_to_list, inputs_from_dict, schedule_to_list
from mortgage_calc.engine import compute_schedule, lump_sum_impacts, summarize
from mortgage_calc.errors import InvalidInputError, ScheduleError
from mortgage_calc.term import format_term, normalize_term_parts
from mortgage_calc_web.scenario_store import create_store_from_env

logger = logging.getLogger(__name__)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _store():
    return current_app.extensions["scenario_store"]


def _request_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return payload


def _run_schedule(payload: dict) -> dict:
    loan, adjustments, lump_sums = inputs_from_dict(payload)
    schedule = compute_schedule(loan, adjustments, lump_sums)
    baseline = compute_schedule(loan, adjustments) if lump_sums else None
    return {
        "summary": summarize(loan, schedule, baseline),
        "schedule": schedule_to_list(schedule),
    }


def create_app(config=None) -> Flask:
    """Create the JSON API around the schedule engine.

    Settings come from the environment (``FLASK_SECRET_KEY``,
    ``SCENARIO_DATABASE_URL``, ``SCENARIO_MAX_PER_USER``) and can be
    overridden with ``config``.
    """
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=os.environ.get("FLASK_SECRET_KEY", "dev-secret-key"),
        SCENARIO_DATABASE_URL=os.environ.get("SCENARIO_DATABASE_URL"),
        SCENARIO_MAX_PER_USER=int(os.environ.get("SCENARIO_MAX_PER_USER", "10")),
    )
    if config:
        app.config.update(config)
    app.extensions["scenario_store"] = create_store_from_env(
        app.config["SCENARIO_DATABASE_URL"], app.config["SCENARIO_MAX_PER_USER"]
    )

    @app.errorhandler(ScheduleError)
    def handle_schedule_error(exc: ScheduleError):
        logger.warning("Rejected schedule request: %s", exc)
        return jsonify({"error": str(exc), "kind": type(exc).__name__}), 400

    @app.post("/api/schedule")
    def schedule():
        return jsonify(_run_schedule(_request_payload()))

    @app.post("/api/impacts")
    def impacts():
        loan, adjustments, lump_sums = inputs_from_dict(_request_payload())
        return jsonify({"impacts": impacts_to_list(lump_sum_impacts(loan, adjustments, lump_sums))})

    @app.get("/api/term")
    def term():
        parts = normalize_term_parts(request.args.get("years"), request.args.get("months"))
        return jsonify(
            {
                "years": parts.years,
                "months": parts.months,
                "totalMonths": parts.total_months,
                "label": format_term(parts.total_months),
            }
        )

    @app.get("/api/scenarios")
    def list_scenarios():
        scenarios = _store().list_scenarios(_ensure_user_token())
        return jsonify({"scenarios": [scenario.to_dict() for scenario in scenarios]})

    @app.post("/api/scenarios")
    def add_scenario():
        payload = _request_payload()
        inputs = payload.get("inputs")
        # Reject inputs the engine cannot parse before they are stored.
        inputs_from_dict(inputs)
        scenario_id = uuid4().hex
        name = payload.get("name") or ""
        if not isinstance(name, str):
            raise InvalidInputError("Scenario name must be a string")
        name = name.strip() or "Scenario"
        _store().add_scenario(_ensure_user_token(), scenario_id, name, inputs)
        return jsonify({"id": scenario_id, "name": name}), 201

    @app.get("/api/scenarios/<scenario_id>/schedule")
    def scenario_schedule(scenario_id: str):
        scenario = _store().get_scenario(_ensure_user_token(), scenario_id)
        if scenario is None:
            return jsonify({"error": "Scenario not found"}), 404
        result = _run_schedule(scenario.inputs)
        result["scenario"] = {"id": scenario.id, "name": scenario.name}
        return jsonify(result)

    @app.delete("/api/scenarios/<scenario_id>")
    def remove_scenario(scenario_id: str):
        if not _store().remove_scenario(_ensure_user_token(), scenario_id):
            return jsonify({"error": "Scenario not found"}), 404
        return "", 204

    @app.delete("/api/scenarios")
    def clear_scenarios():
        _store().clear_scenarios(_ensure_user_token())
        return "", 204

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")
    print("Starting Mortgage Calculator API...")
    create_app().run(debug=False)
