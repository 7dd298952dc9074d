"""
REST API routes for Immersion Timeline region inference.

Services (engine, admin, batch registry, media client) are attached to the
app by webapp.create_app() and looked up per request.
"""

import logging
from flask import Blueprint, Response, current_app, request, jsonify

from region_models import RegionInputError, RegionImportError
from region_ai import ResolverError, lookup_period
from batch import BatchRun

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


def _services():
    return current_app.extensions['timeline']


def parse_year(value, field_name):
    """Optional integer year from JSON or query args"""
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RegionInputError(f"{field_name} must be an integer year")


def confirmed():
    return request.args.get('confirm', '').lower() == 'true'


# ==================== Health Check ====================

@api.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


# ==================== AI Resolver Endpoint ====================

@api.route('/region-lookup', methods=['GET'])
def region_lookup():
    period = (request.args.get('period') or '').strip()
    if not period:
        return jsonify({'error': 'Missing period parameter'}), 400

    try:
        resolution = lookup_period(
            period,
            start_year=parse_year(request.args.get('startYear'), 'startYear'),
            end_year=parse_year(request.args.get('endYear'), 'endYear'),
            title=request.args.get('title'),
        )
        return jsonify(resolution.to_dict())
    except RegionInputError as e:
        return jsonify({'error': str(e)}), 400
    except ResolverError as e:
        if e.kind == 'unavailable':
            return jsonify({'error': 'Region lookup not configured'}), 503
        logger.error(f"Region lookup error: {e}")
        return jsonify({'error': 'Failed to look up region'}), 502


# ==================== Inference ====================

@api.route('/regions/infer', methods=['POST'])
def infer_regions():
    try:
        data = request.get_json(silent=True) or {}
        era = data.get('era')
        if not isinstance(era, str) or not era.strip():
            return jsonify({'error': 'era must be a non-empty string'}), 400

        result = _services()['engine'].infer(
            era,
            start_year=parse_year(data.get('startYear'), 'startYear'),
            end_year=parse_year(data.get('endYear'), 'endYear'),
            title=data.get('title'),
            description=data.get('description'),
        )
        return jsonify(result.to_dict())
    except RegionInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Infer regions error: {e}")
        return jsonify({'error': 'Failed to infer regions'}), 500


@api.route('/regions/override', methods=['POST'])
def manual_override():
    try:
        data = request.get_json(silent=True) or {}
        result = _services()['engine'].manual_override(
            data.get('period'),
            data.get('countries') or [],
            timeframe=data.get('timeframe', ''),
            description=data.get('description', ''),
        )
        return jsonify(result.to_dict())
    except RegionInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Manual override error: {e}")
        return jsonify({'error': 'Failed to save override'}), 500


# ==================== Admin: Listing ====================

@api.route('/regions', methods=['GET'])
def list_regions():
    try:
        rows = _services()['admin'].list_rows(
            source=request.args.get('source') or None,
            query=request.args.get('q') or None,
        )
        return jsonify(rows)
    except RegionInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"List regions error: {e}")
        return jsonify({'error': 'Failed to list regions'}), 500


@api.route('/regions/stats', methods=['GET'])
def region_stats():
    try:
        return jsonify(_services()['admin'].stats())
    except Exception as e:
        logger.error(f"Region stats error: {e}")
        return jsonify({'error': 'Failed to get stats'}), 500


@api.route('/regions/conflicts', methods=['GET'])
def region_conflicts():
    period = (request.args.get('period') or '').strip()
    if not period:
        return jsonify({'error': 'Missing period parameter'}), 400
    try:
        return jsonify({'period': period, 'conflicts': _services()['admin'].find_conflicts(period)})
    except Exception as e:
        logger.error(f"Region conflicts error: {e}")
        return jsonify({'error': 'Failed to check conflicts'}), 500


@api.route('/regions/suggest', methods=['GET'])
def region_suggest():
    period = (request.args.get('period') or '').strip()
    if not period:
        return jsonify({'error': 'Missing period parameter'}), 400
    return jsonify({'period': period, 'suggestions': _services()['admin'].suggest(period)})


# ==================== Admin: Custom Overrides ====================

@api.route('/regions/custom/<path:period>', methods=['GET'])
def get_custom(period):
    try:
        entry = _services()['admin'].get_custom(period)
        if not entry:
            return jsonify({'error': 'Mapping not found'}), 404
        return jsonify({'period': period, **entry.to_dict()})
    except Exception as e:
        logger.error(f"Get custom mapping error: {e}")
        return jsonify({'error': 'Failed to load mapping'}), 500


@api.route('/regions/custom/<path:period>', methods=['PUT'])
def save_custom(period):
    try:
        data = request.get_json(silent=True) or {}
        row = _services()['admin'].save_custom(
            period,
            data.get('countries') or [],
            timeframe=data.get('timeframe', ''),
            description=data.get('description', ''),
        )
        return jsonify(row)
    except RegionInputError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Save custom mapping error: {e}")
        return jsonify({'error': 'Failed to save mapping'}), 500


@api.route('/regions/custom/<path:period>', methods=['DELETE'])
def delete_custom(period):
    try:
        _services()['admin'].delete_custom(period)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Delete custom mapping error: {e}")
        return jsonify({'error': 'Failed to delete mapping'}), 500


@api.route('/regions/custom', methods=['DELETE'])
def clear_custom():
    if not confirmed():
        return jsonify({'error': 'Pass confirm=true to clear all custom mappings'}), 400
    try:
        count = _services()['admin'].clear_custom()
        return jsonify({'success': True, 'cleared': count})
    except Exception as e:
        logger.error(f"Clear custom mappings error: {e}")
        return jsonify({'error': 'Failed to clear mappings'}), 500


# ==================== Admin: AI Cache ====================

@api.route('/regions/cache', methods=['GET'])
def list_cache():
    try:
        return jsonify(_services()['admin'].list_cache())
    except Exception as e:
        logger.error(f"List cache error: {e}")
        return jsonify({'error': 'Failed to list cache'}), 500


@api.route('/regions/cache/<path:period>', methods=['DELETE'])
def evict_cache(period):
    try:
        _services()['admin'].delete_cache(period)
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Evict cache error: {e}")
        return jsonify({'error': 'Failed to evict entry'}), 500


@api.route('/regions/cache', methods=['DELETE'])
def clear_cache():
    if not confirmed():
        return jsonify({'error': 'Pass confirm=true to clear the cache'}), 400
    try:
        count = _services()['admin'].clear_cache()
        return jsonify({'success': True, 'cleared': count})
    except Exception as e:
        logger.error(f"Clear cache error: {e}")
        return jsonify({'error': 'Failed to clear cache'}), 500


# ==================== Admin: Import / Export ====================

@api.route('/regions/import', methods=['POST'])
def import_regions():
    try:
        periods = _services()['admin'].import_json(request.get_data(as_text=True))
        return jsonify({'success': True, 'imported': len(periods), 'periods': periods})
    except RegionImportError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Import regions error: {e}")
        return jsonify({'error': 'Failed to import mappings'}), 500


@api.route('/regions/export', methods=['GET'])
def export_regions():
    fmt = request.args.get('format', 'json').lower()
    try:
        body = _services()['admin'].export(fmt)
    except RegionInputError as e:
        return jsonify({'error': str(e)}), 400

    if fmt == 'csv':
        return Response(body, mimetype='text/csv',
                        headers={'Content-Disposition': 'attachment; filename=region-mappings.csv'})
    return Response(body, mimetype='application/json')


# ==================== Batch Re-analysis ====================

@api.route('/regions/batch', methods=['POST'])
def create_batch():
    try:
        data = request.get_json(silent=True) or {}
        items = data.get('items')
        if not isinstance(items, list) or not items:
            return jsonify({'error': 'items must be a non-empty list'}), 400

        services = _services()
        run = services['batches'].add(BatchRun(services['engine'], items))
        if data.get('start', True):
            run.start()
        return jsonify(run.to_dict()), 202
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Create batch error: {e}")
        return jsonify({'error': 'Failed to start batch'}), 500


@api.route('/regions/batch/<run_id>', methods=['GET'])
def get_batch(run_id):
    run = _services()['batches'].get(run_id)
    if not run:
        return jsonify({'error': 'Batch not found'}), 404
    return jsonify(run.to_dict())


@api.route('/regions/batch/<run_id>/start', methods=['POST'])
def start_batch(run_id):
    """Start a deferred run or resume a cancelled one"""
    run = _services()['batches'].get(run_id)
    if not run:
        return jsonify({'error': 'Batch not found'}), 404
    try:
        run.start()
    except RuntimeError:
        return jsonify({'error': 'Batch already running'}), 409
    return jsonify(run.to_dict()), 202


@api.route('/regions/batch/<run_id>/cancel', methods=['POST'])
def cancel_batch(run_id):
    run = _services()['batches'].get(run_id)
    if not run:
        return jsonify({'error': 'Batch not found'}), 404
    run.cancel()
    return jsonify({'success': True, 'summary': run.summary()})


@api.route('/regions/batch/<run_id>/apply', methods=['POST'])
def apply_batch(run_id):
    services = _services()
    run = services['batches'].get(run_id)
    if not run:
        return jsonify({'error': 'Batch not found'}), 404

    try:
        data = request.get_json(silent=True) or {}
        if isinstance(data.get('mediaIds'), list):
            run.select(data['mediaIds'])
        return jsonify(run.apply(services['media']))
    except Exception as e:
        logger.error(f"Apply batch error: {e}")
        return jsonify({'error': 'Failed to apply batch'}), 500
