#!/usr/bin/env python3
"""
cryptowire web service: latest crypto news, article content, AI analysis/chat and price candles.
Runs the hourly ingestion scheduler alongside the API when started directly.
"""

import logging
import os
import sys
from datetime import datetime, timezone
from functools import wraps

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from cors_config import configure_cors
from cryptowire.analysis.gateway import AnalysisGateway, ChatMessage, ModelUnavailable
from cryptowire.config import Config
from cryptowire.contracts.payloads import (
    validate_analyze_request,
    validate_chat_request,
    validate_fetch_content_request,
)
from cryptowire.extraction.renderer import ArticleRenderer, RenderError, RenderTimeout, validate_fetch_url
from cryptowire.ingestion.cryptopanic import UpstreamUnavailable
from cryptowire.ingestion.scheduler import IngestionScheduler
from cryptowire.market.candles import OKXCandleClient
from cryptowire.storage.base import StoreError
from cryptowire.storage.factory import open_store
from news_ingest_worker import build_pipeline

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def handle_store_error(f):
    """Decorator for handling storage errors gracefully"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except StoreError as e:
            logger.error(f"Database error in {f.__name__}: {e}")
            return jsonify({'error': 'Database temporarily unavailable', 'retry': True}), 503
    return decorated_function


def _int_arg(name, default):
    """Parse a positive int query arg; returns (value, error_message)."""
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default, None
    try:
        value = int(raw)
    except ValueError:
        return None, f'{name} must be an integer'
    if value < 1:
        return None, f'{name} must be >= 1'
    return value, None


def create_app(config=None, *, store=None, gateway=None, renderer_factory=None,
               candle_client=None, pipeline=None):
    """Build the Flask app; collaborators default to ones built from `config`."""
    if config is None and (store is None or gateway is None):
        raise ValueError("config is required unless store and gateway are supplied")
    if store is None:
        store = open_store(config)
    if gateway is None:
        gateway = AnalysisGateway(config.openai_api_key, model=config.openai_model)
    if renderer_factory is None:
        marker_ms = config.render_marker_timeout_ms if config else 5000
        nav_ms = config.render_navigation_timeout_ms if config else 30000

        def renderer_factory():
            return ArticleRenderer(marker_timeout_ms=marker_ms, navigation_timeout_ms=nav_ms)
    if candle_client is None:
        candle_client = OKXCandleClient(timeout=config.request_timeout if config else 30)

    app = Flask(__name__)
    app.json.sort_keys = False
    configure_cors(app, config.cors_origins if config else None)

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=["1000 per day", "200 per hour"],
        storage_uri="memory://"
    )
    limiter.init_app(app)

    @app.route('/health')
    @limiter.exempt
    @handle_store_error
    def health_check():
        """API health check endpoint"""
        report = pipeline.last_report if pipeline is not None else None
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'news_count': store.count(),
            'ingestion': {
                'running': pipeline.running if pipeline is not None else False,
                'last_report': report.to_dict() if report else None,
            },
        })

    @app.route('/latest-news')
    @handle_store_error
    def latest_news():
        """Stored news, newest first, one page at a time"""
        page, err = _int_arg('page', 1)
        if err:
            return jsonify({'error': err}), 400
        limit, err = _int_arg('limit', 10)
        if err:
            return jsonify({'error': err}), 400
        limit = min(limit, MAX_PAGE_SIZE)
        rows = store.list_page(page, limit)
        return jsonify([r.to_dict() for r in rows])

    @app.route('/fetch-content', methods=['POST'])
    @handle_store_error
    def fetch_content():
        """Article body + original source link for one aggregator URL"""
        data = request.get_json(silent=True)
        errors = validate_fetch_content_request(data)
        if errors:
            return jsonify({'error': 'URL is required', 'details': errors}), 400
        url = data['url'].strip()
        blocked = validate_fetch_url(url)
        if blocked:
            return jsonify({'error': f'URL not allowed: {blocked}'}), 400

        stored = store.get_by_url(url)
        if stored is not None and stored.content:
            return jsonify({'content': stored.content, 'sourceLink': stored.source_link})

        try:
            with renderer_factory() as renderer:
                extraction = renderer.render(url)
        except RenderTimeout as e:
            logger.warning(f"Render timeout for {url}: {e}")
            return jsonify({'error': 'Timed out loading article'}), 504
        except RenderError as e:
            logger.warning(f"Render error for {url}: {e}")
            return jsonify({'error': 'Failed to load article'}), 502

        if not extraction.content:
            return jsonify({'error': 'Content not found'}), 404
        return jsonify({'content': extraction.content, 'sourceLink': extraction.source_link})

    @app.route('/analyze', methods=['POST'])
    @limiter.limit("20 per minute")
    def analyze():
        """One-shot AI investment analysis"""
        data = request.get_json(silent=True)
        errors = validate_analyze_request(data)
        if errors:
            return jsonify({'error': 'Prompt is required', 'details': errors}), 400
        try:
            analysis = gateway.analyze(data['prompt'])
        except ModelUnavailable:
            return jsonify({'error': 'Failed to generate analysis'}), 500
        return jsonify({'analysis': analysis})

    @app.route('/chat', methods=['POST'])
    @limiter.limit("30 per minute")
    def chat():
        """AI chat over a running transcript, framed by article context"""
        data = request.get_json(silent=True)
        errors = validate_chat_request(data)
        if errors:
            return jsonify({'error': 'Invalid chat request', 'details': errors}), 400
        messages = [ChatMessage.from_dict(m) for m in data['messages']]
        try:
            response_text = gateway.chat(messages, data.get('context'))
        except ModelUnavailable:
            return jsonify({'error': 'Failed to generate response'}), 500
        return jsonify({'response': response_text})

    @app.route('/candles')
    def candles():
        """Price candles for the chart, oldest first"""
        limit, err = _int_arg('limit', 720)
        if err:
            return jsonify({'error': err}), 400
        inst_id = request.args.get('instId', 'BTC-USDT')
        bar = request.args.get('bar', '1H')
        try:
            rows = candle_client.fetch_candles(inst_id=inst_id, bar=bar, limit=limit)
        except UpstreamUnavailable as e:
            logger.error(f"Candle fetch failed: {e}")
            return jsonify({'error': 'Failed to fetch market data'}), 502
        return jsonify([c.to_dict() for c in rows])

    return app


def main():
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    try:
        config = Config.from_env()
    except ValueError as e:
        logger.error(f"Configuration error:\n{e}")
        sys.exit(1)

    pipeline = build_pipeline(config)
    scheduler = IngestionScheduler(pipeline, interval_minutes=config.ingest_interval_minutes)
    app = create_app(config, store=pipeline.store, renderer_factory=pipeline.renderer_factory, pipeline=pipeline)

    scheduler.start()
    debug = os.environ.get('FLASK_ENV') == 'development'
    logger.info(f"Server running at http://localhost:{config.port}")
    try:
        # Reloader would fork a second scheduler
        app.run(host='0.0.0.0', port=config.port, debug=debug, use_reloader=False, threaded=True)
    finally:
        scheduler.stop(timeout=30)


if __name__ == '__main__':
    main()
