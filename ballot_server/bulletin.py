from flask import Flask, jsonify, render_template_string, request
from flask_socketio import SocketIO

from .errors import BallotError

TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
<title>Ballot Bulletin Board</title>
<script src="https://cdnjs.cloudflare.com/ajax/libs/socket.io/4.5.1/socket.io.min.js"></script>
<style>
body { font-family: 'Segoe UI', Arial, sans-serif; background: #f4f6fa; margin: 0; }
h1 { background: #2d5be3; color: #fff; margin: 0; padding: 24px 0; text-align: center; }
#board { max-width: 950px; margin: 32px auto; display: flex; flex-wrap: wrap; gap: 24px; justify-content: center; }
.card { background: #fff; border-radius: 12px; box-shadow: 0 4px 20px rgba(0,0,0,0.07); padding: 24px; min-width: 260px; max-width: 400px; flex: 1 1 300px; }
.card h2 { margin-top: 0; color: #2d5be3; font-size: 1.2em; border-bottom: 1px solid #e3e7ef; padding-bottom: 8px; }
.json-list { font-family: 'Fira Mono', monospace; background: #f4f6fa; padding: 8px; border-radius: 6px; font-size: 0.95em; overflow-x: auto; }
.winner { color: #0a8a2a; font-weight: bold; }
.event-list { margin: 0; padding: 0; list-style: none; font-size: 0.9em; }
.event-list li { border-bottom: 1px solid #e3e7ef; padding: 4px 0; }
@media (max-width: 900px) { #board { flex-direction: column; align-items: center; } .card { max-width: 95vw; } }
</style>
</head>
<body>
<h1>Ballot Bulletin Board</h1>
<div id="state-timer" style="text-align:center;font-size:1.3em;margin:18px 0 0 0;"></div>
<div id="board"></div>
<script>
let timerInterval = null;
let lastTimeLeft = 0;
let lastPhase = "";
let events = [];

function startCountdown(phase, isOpen, timeLeft) {
    lastTimeLeft = timeLeft;
    lastPhase = phase;
    function updateTimer() {
        let mins = Math.floor(lastTimeLeft / 60);
        let secs = lastTimeLeft % 60;
        let timerText = isOpen
            ? `<span style="color:#2d5be3;font-weight:bold;">Voting open</span> &mdash; <span style="color:#222;">Time left: ${mins}:${secs.toString().padStart(2, "0")}</span>`
            : `<span style="color:#c00;font-weight:bold;">Voting not active (${lastPhase})</span>`;
        document.getElementById("state-timer").innerHTML = timerText;
        if (lastTimeLeft > 0) lastTimeLeft--;
    }
    if (timerInterval) clearInterval(timerInterval);
    updateTimer();
    timerInterval = setInterval(updateTimer, 1000);
}

function escapeHtml(value) {
    return String(value).replace(/[&<>"']/g, ch => ({"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"}[ch]));
}

function renderBoard(data) {
    startCountdown(data.phase, data.stats.is_open, Math.floor(data.stats.time_remaining));
    let html = "<div class='card'><h2>Candidates</h2>";
    if (data.candidates.length > 0) {
        html += "<table><tr><th>#</th><th>Name</th><th>Votes</th></tr>";
        html += data.candidates.map(c =>
            `<tr class='${c.winner ? "winner" : ""}'><td>${c.id}</td><td>${escapeHtml(c.name)}${c.winner ? " (winner)" : ""}</td><td>${c.score}</td></tr>`
        ).join("");
        html += "</table>";
    } else {
        html += "<div class='json-list'>No candidates</div>";
    }
    html += "</div>";

    html += "<div class='card'><h2>Statistics</h2><div class='json-list'>";
    html += `Candidates: ${data.stats.total_candidates}<br>Votes cast: ${data.stats.total_votes}<br>`;
    html += `Administrator: ${escapeHtml(data.administrator)}</div></div>`;

    html += "<div class='card'><h2>Notifications</h2><ul class='event-list'>";
    html += events.slice(-20).reverse().map(e => `<li>#${e.sequence} ${escapeHtml(e.name)} ${escapeHtml(JSON.stringify(e.payload))}</li>`).join("");
    html += "</ul></div>";
    document.getElementById("board").innerHTML = html;
}

var socket = io();
socket.on('update', function(data) { renderBoard(data); });
socket.on('notification', function(e) { events.push(e); });
fetch('/api/events').then(r => r.json()).then(data => {
    events = data.events;
    return fetch('/api/board');
}).then(r => r.json()).then(renderBoard);
</script>
</body>
</html>
"""


def board_snapshot(engine):
    with engine.lock:
        return {
            "engine_id": engine.engine_id,
            "administrator": engine.administrator,
            "phase": engine.phase,
            "candidates": [c.to_dict() for c in engine.get_candidates()],
            "stats": engine.get_voting_stats().to_dict(),
        }


def create_bulletin(engine, async_mode="eventlet"):
    """Build the read-only board for ``engine``; returns ``(app, socketio)``.

    Every engine notification is pushed to socket clients, first under its
    own name and as ``notification``, then as a fresh ``update`` board.
    """
    app = Flask(__name__)
    socketio = SocketIO(app, async_mode=async_mode)

    @app.route("/")
    def index():
        return render_template_string(TEMPLATE)

    @app.route("/api/board")
    def api_board():
        return jsonify(board_snapshot(engine))

    @app.route("/api/events")
    def api_events():
        since = request.args.get("since", 0, type=int)
        return jsonify({"events": [e.to_dict() for e in engine.events.since(since)]})

    @app.route("/api/candidates/<int:candidate_id>")
    def api_candidate(candidate_id):
        try:
            return jsonify(engine.get_candidate(candidate_id).to_dict())
        except BallotError as e:
            return jsonify({"error": e.code, "message": e.message}), 404

    @app.route("/api/winner")
    def api_winner():
        winner = engine.get_winner()
        if winner is None:
            return jsonify({"error": "no-winner", "message": "No winner declared yet"}), 404
        return jsonify(winner.to_dict())

    def broadcast(event):
        socketio.emit(event.name, event.to_dict())
        socketio.emit("notification", event.to_dict())
        socketio.emit("update", board_snapshot(engine))

    app.extensions["ballot_unsubscribe"] = engine.events.subscribe(broadcast)
    return app, socketio
