# CIGARETTE TRACKER (FLASK)
# One button logs an event; four tabs chart the counts per day and month.

import logging
import os
from datetime import datetime

from flask import Flask, abort, flash, jsonify, redirect, render_template_string, request, url_for

from aggregator import VIEWS, UnknownViewError, get_view, series_for_view
from store import EventStore, parse_timestamp

logger = logging.getLogger(__name__)


# ---------------- CONFIG ----------------
def configure_logging(level="INFO"):
    level = getattr(logging, str(level).upper(), logging.INFO)
    # basicConfig is a no-op once handlers exist, so set the level explicitly
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)


def load_config(app, overrides=None):
    app.config["DATABASE"] = os.environ.get("TRACKER_DB", "events.db")
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["TRACKER_TITLE"] = os.environ.get("TRACKER_TITLE", "Cigarette Tracker")
    app.config["LOG_LEVEL"] = os.environ.get("TRACKER_LOG_LEVEL", "INFO")
    if overrides:
        app.config.update(overrides)


# ---------------- APP ----------------
def create_app(config=None, store=None):
    app = Flask(__name__)
    load_config(app, config)
    configure_logging(app.config["LOG_LEVEL"])

    if store is None:
        store = EventStore(app.config["DATABASE"])
        store.init_db()
        store.load()
    app.extensions["event_store"] = store

    # warn once, on the first page view after startup
    pending = {"skipped": store.skipped}

    def current_store():
        return app.extensions["event_store"]

    def parse_now(raw):
        if not raw:
            return datetime.now()
        try:
            return parse_timestamp(raw)
        except ValueError:
            abort(400, description=f"invalid 'now' value: {raw!r}")

    @app.route("/")
    def index():
        return redirect(url_for("view", name="daily"))

    @app.route("/view/<name>")
    def view(name):
        try:
            selected = get_view(name)
        except UnknownViewError:
            abort(404)

        if pending["skipped"]:
            flash(f"{pending['skipped']} stored entries could not be read and were skipped.", "warning")
            pending["skipped"] = 0

        series = series_for_view(current_store().snapshot(), name, datetime.now())
        return render_template_string(
            TEMPLATE,
            title=app.config["TRACKER_TITLE"],
            views=VIEWS.values(),
            selected=selected,
            series=series.to_dict(),
        )

    @app.route("/log", methods=["POST"])
    def log_event():
        name = request.form.get("view", "daily")
        if name not in VIEWS:
            name = "daily"

        if not current_store().log_event():
            flash("Could not save your entry. It is kept and will be saved with the next one.", "error")
        return redirect(url_for("view", name=name))

    @app.route("/api/series/<name>")
    def api_series(name):
        now = parse_now(request.args.get("now"))
        try:
            series = series_for_view(current_store().snapshot(), name, now)
        except UnknownViewError:
            return jsonify({"error": f"unknown view: {name}"}), 404
        return jsonify(series.to_dict())

    @app.errorhandler(400)
    def bad_request(err):
        return jsonify({"error": err.description}), 400

    logger.info("Tracker ready with %d events", len(store.events))
    return app


# ---------------- UI (MOBILE FRIENDLY) ----------------
TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <title>{{ title }}</title>
    <style>
body {
    font-family: Arial, sans-serif;
    background: #f4f6f8;
    padding: 10px;
    margin: 0;
}

h1 {
    text-align: center;
}

.tabs {
    display: flex;
    gap: 4px;
    margin-bottom: 10px;
}

.tabs a {
    flex: 1;
    text-align: center;
    padding: 10px;
    background: #dde3ea;
    border-radius: 6px;
    color: #333;
    text-decoration: none;
}

.tabs a.active {
    background: #2196f3;
    color: white;
}

.card {
    background: white;
    padding: 15px;
    border-radius: 10px;
    margin-bottom: 15px;
}

.flash-warning { background: #fff3cd; }
.flash-error { background: #f8d7da; }

.log-button {
    position: fixed;
    right: 20px;
    bottom: 20px;
    width: 60px;
    height: 60px;
    border-radius: 50%;
    border: none;
    background: #2196f3;
    color: white;
    font-size: 30px;
}
    </style>
</head>
<body>
    <h1>{{ title }}</h1>

    {% with messages = get_flashed_messages(with_categories=true) %}
    {% for category, message in messages %}
    <div class="card flash-{{ category }}">{{ message }}</div>
    {% endfor %}
    {% endwith %}

    <div class="tabs">
    {% for v in views %}
        <a href="{{ url_for('view', name=v.name) }}" class="{{ 'active' if v.name == selected.name else '' }}">{{ v.tab }}</a>
    {% endfor %}
    </div>

    <div class="card">
        <h3>{{ selected.title }}: {{ series.total }}</h3>
        <canvas id="eventChart"></canvas>
    </div>

    <form method="post" action="{{ url_for('log_event') }}">
        <input type="hidden" name="view" value="{{ selected.name }}">
        <button class="log-button" type="submit" title="Log Cigarette">+</button>
    </form>

<script>
const series = {{ series | tojson }};

new Chart(document.getElementById('eventChart'), {
    type: 'bar',
    data: {
        labels: series.labels,
        datasets: [{
            data: series.counts,
            backgroundColor: '{{ "#9c27b0" if selected.unit == "month" else "#2196f3" }}',
            borderRadius: 4
        }]
    },
    options: {
        plugins: { legend: { display: false } },
        scales: { y: { beginAtZero: true, ticks: { precision: 0 } } }
    }
});
</script>
</body>
</html>
"""

# ---------------- RUN ----------------
if __name__ == "__main__":
    create_app().run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
    )
