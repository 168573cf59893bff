"""
Flask web application for the page cloner.

Provides a web form that clones a page and returns it as a download.
"""

import asyncio

from flask import Flask, Response, render_template, request, jsonify

from ..snapshot import CloneFailure, clone
from ..utils.constants import DEFAULT_OUTPUT_FILENAME
from ..utils.log import get_logger
from ..utils.paths import validate_url


logger = get_logger("web")


def create_app(clone_page=clone):
    """
    Create and configure the Flask application.

    Args:
        clone_page: Coroutine function turning a URL into HTML
    """
    app = Flask(__name__, template_folder='templates')
    app.config['CLONE_PAGE'] = clone_page

    @app.route('/')
    def index():
        """Render the main UI page."""
        return render_template('index.html')

    @app.route('/api/clone', methods=['POST'])
    def clone_page_view():
        """Clone a page and return it as an HTML attachment."""
        data = request.get_json(silent=True) or request.form
        raw_url = (data.get('url') or '').strip()

        if not raw_url:
            return jsonify({'error': 'Please enter a valid URL'}), 400

        try:
            url = validate_url(raw_url)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        try:
            html = asyncio.run(app.config['CLONE_PAGE'](url))
        except CloneFailure as e:
            logger.error(f"Clone of {url} failed: {e.reason}")
            return jsonify({'error': e.reason}), 502

        return Response(
            html,
            mimetype='text/html',
            headers={
                'Content-Disposition': f'attachment; filename={DEFAULT_OUTPUT_FILENAME}'
            }
        )

    return app


def run_app(host: str = '127.0.0.1', port: int = 5000, debug: bool = False):
    """Run the Flask web application."""
    app = create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    run_app()
