"""
Web server for prospecting API endpoints and health monitoring
"""

import asyncio
import io
import os
import logging
import time
from datetime import datetime, timezone

import numpy as np
from flask import Flask, jsonify, request, Response
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST

from .config import config
from .analysis.history import summarize_history
from .analysis.leaderboard import build_leaderboard, leaderboard_frame, ranked
from .analysis.revenue import list_archetypes, resolve_venue_type
from .data.api_client import TexasComptrollerAPI
from .data.records import EstablishmentKey, EstablishmentProfile, normalize_receipt
from .enrichment.ownership import OwnershipEnricher
from .storage.cache import cache_service
from .storage.database import DatabaseManager
from .workflow import SEARCH_FAILED, RANKING_FAILED, HISTORY_FAILED

logger = logging.getLogger(__name__)

# Prometheus metrics setup
registry = CollectorRegistry()
app = Flask(__name__)

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=registry
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

PROSPECT_COUNT = Gauge(
    'prospects_total',
    'Total number of saved prospects',
    registry=registry
)

UPSTREAM_CALLS_TOTAL = Counter(
    'upstream_calls_total',
    'Calls to external services by outcome',
    ['service', 'status'],
    registry=registry
)

_db_manager = None


def get_db() -> DatabaseManager:
    """Lazily created database manager shared by requests"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager(app.config.get('DATABASE_URL'))
    return _db_manager


def _record_upstream(service: str, ok: bool):
    UPSTREAM_CALLS_TOTAL.labels(service=service, status='success' if ok else 'error').inc()


def _bad_request(e: Exception):
    return jsonify({'error': str(e)}), 400


@app.before_request
def before_request():
    request.start_time = time.time()

@app.after_request
def after_request(response):
    if hasattr(request, 'start_time'):
        duration = time.time() - request.start_time
        REQUEST_DURATION.labels(
            method=request.method,
            endpoint=request.endpoint or 'unknown'
        ).observe(duration)

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=request.endpoint or 'unknown',
            status_code=str(response.status_code)
        ).inc()

    return response

@app.route('/health')
def health_check():
    """Basic health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'environment': os.getenv('ENVIRONMENT', 'dev'),
        'timestamp': datetime.now(timezone.utc).isoformat()
    })

@app.route('/status')
def system_status():
    """Detailed system status"""
    try:
        db_manager = get_db()
        api_client = TexasComptrollerAPI()

        db_ok = db_manager.test_connection()
        api_ok = asyncio.run(api_client.test_connection())

        return jsonify({
            'database_connected': db_ok,
            'api_connected': api_ok,
            'enrichment_configured': config.enrichment.is_configured,
            'prospect_stats': db_manager.get_stats() if db_ok else {},
            'cache_stats': asyncio.run(cache_service.get_stats()),
            'config': config.to_dict()
        })
    except Exception as e:
        logger.error(f"Error in status endpoint: {e}")
        return jsonify({'error': str(e)}), 500

@app.route('/metrics')
def metrics():
    """Prometheus metrics endpoint"""
    try:
        PROSPECT_COUNT.set(get_db().get_stats().get('total_prospects', 0))
        return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(f"Error in metrics endpoint: {e}")
        return Response(f"Error generating metrics: {str(e)}", status=500, mimetype='text/plain')

@app.route('/api/venue-types')
def venue_types():
    return jsonify([a.to_dict() for a in list_archetypes()])

@app.route('/api/search')
def search():
    """Search establishments by name with an optional city"""
    name = request.args.get('q', '')
    city = request.args.get('city')
    try:
        profiles = asyncio.run(TexasComptrollerAPI().search_establishments(name, city))
    except ValueError as e:
        return _bad_request(e)

    _record_upstream('open_data', profiles is not None)
    if profiles is None:
        return jsonify({'error': SEARCH_FAILED}), 502

    logger.info(f"Search '{name}' returned {len(profiles)} establishments")
    return jsonify([p.to_dict() for p in profiles])

@app.route('/api/establishments/<taxpayer_number>/<location_number>')
def establishment_analysis(taxpayer_number, location_number):
    """Monthly history, active-month average and revenue projection"""
    try:
        venue_type = resolve_venue_type(request.args.get('venue_type') or config.analysis.default_venue_type)
    except ValueError as e:
        return _bad_request(e)

    key = EstablishmentKey(taxpayer_number, location_number)
    rows = asyncio.run(TexasComptrollerAPI().get_history_rows(key))
    _record_upstream('open_data', rows is not None)
    if rows is None:
        return jsonify({'error': HISTORY_FAILED}), 502
    if not rows:
        return jsonify({'error': 'Establishment not found'}), 404

    history = [normalize_receipt(row) for row in rows]
    summary = summarize_history(history)
    return jsonify({
        # Latest row carries the current profile fields
        'establishment': EstablishmentProfile.from_record(rows[-1]).to_dict(),
        'history': [r.to_dict() for r in history],
        'projection': summary.project(venue_type).to_dict(),
        'breakdown': summary.project(venue_type).breakdown(),
    })

@app.route('/api/establishments/<taxpayer_number>/<location_number>/ownership')
def establishment_ownership(taxpayer_number, location_number):
    """AI ownership lookup; always answers with three sections"""
    profile = EstablishmentProfile(
        location_name=request.args.get('name', ''),
        location_address=request.args.get('address', ''),
        location_city=request.args.get('city', ''),
        location_zip=request.args.get('zip', ''),
        taxpayer_name=request.args.get('taxpayer_name', ''),
        taxpayer_number=taxpayer_number,
        location_number=location_number,
    )
    report = asyncio.run(OwnershipEnricher().lookup(profile))
    if report.source != 'unavailable':
        _record_upstream('enrichment', report.source == 'ai')
    return jsonify(report.to_dict())

def _leaderboard_entries():
    area = request.args.get('area', '')
    rows = asyncio.run(TexasComptrollerAPI().get_leaderboard_rows(area))
    _record_upstream('open_data', rows is not None)
    return None if rows is None else build_leaderboard(rows)

@app.route('/api/leaderboard')
def leaderboard():
    """Ranked establishments for ?area=<city or ZIP>"""
    try:
        entries = _leaderboard_entries()
    except ValueError as e:
        return _bad_request(e)
    if entries is None:
        return jsonify({'error': RANKING_FAILED}), 502
    return jsonify([entry.to_dict(rank) for rank, entry in ranked(entries)])

@app.route('/api/leaderboard/csv')
def leaderboard_csv():
    try:
        entries = _leaderboard_entries()
    except ValueError as e:
        return Response(str(e), status=400, mimetype='text/plain')
    if entries is None:
        return Response(RANKING_FAILED, status=502, mimetype='text/plain')

    df = leaderboard_frame(entries).replace([np.inf, -np.inf], np.nan)
    output = io.StringIO()
    df.to_csv(output, index=False)
    csv_data = output.getvalue()
    output.close()

    return Response(csv_data, mimetype='text/csv', headers={'Content-Disposition': 'attachment; filename=leaderboard.csv'})

@app.route('/api/prospects')
def list_prospects():
    return jsonify(get_db().list_prospects())

@app.route('/api/prospects', methods=['POST'])
def save_prospect():
    """Save a prospect; saving an existing one is a no-op"""
    payload = request.get_json(silent=True) or {}
    try:
        created = get_db().save_prospect(
            location_number=str(payload.get('location_number') or ''),
            location_name=payload.get('location_name', ''),
            taxpayer_name=payload.get('taxpayer_name', ''),
            address=payload.get('address', ''),
            city=payload.get('city', ''),
        )
    except ValueError as e:
        return _bad_request(e)
    return jsonify({'success': True, 'created': created})

@app.route('/api/notes', methods=['POST'])
def save_note():
    payload = request.get_json(silent=True) or {}
    location_number = str(payload.get('location_number') or '')
    try:
        note = get_db().save_note(location_number, payload.get('note_text', ''))
    except ValueError as e:
        return _bad_request(e)
    if note is None:
        return jsonify({'error': f'Prospect {location_number} is not saved'}), 404
    return jsonify(note), 201

@app.route('/api/prospects/<location_number>')
def prospect_status(location_number):
    return jsonify(get_db().get_prospect_status(location_number))

def run_server(host='0.0.0.0', port=5000, debug=False):
    """Run the Flask server"""
    app.run(host=host, port=port, debug=debug)
