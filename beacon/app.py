import os
import sys

from dotenv import load_dotenv
from flask import Flask, Response, current_app, render_template, request
from jinja2 import TemplateError

from beacon.tracking import PIXEL, BeaconError, parse_page_view
from beacon.storage import PageViewStore, StorageError

load_dotenv()

NO_CACHE = 'private, no-cache'

# Every method is routed to the handlers so they can answer 405 themselves,
# HEAD and OPTIONS included.
ALL_METHODS = ['GET', 'HEAD', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']


def plain_text(body, status):
    return Response(body, status=status, mimetype='text/plain')


def method_not_allowed():
    return plain_text('Method Not Allowed', 405)


def render_error(e):
    current_app.logger.exception(f"Template error: {e}")
    return plain_text(str(e), 500)


def create_app(config=None):
    app = Flask(__name__)

    db_path = os.getenv('ANALYTICS_DB', os.path.join('db', 'analytics.sqlite3'))
    app.config['PORT'] = int(os.getenv('PORT', 8080))
    app.config['DATABASE_PATH'] = db_path
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    if config:
        app.config.update(config)
    app.logger.setLevel(app.config['LOG_LEVEL'])
    app.config['DATABASE_PATH'] = os.path.abspath(app.config['DATABASE_PATH'])
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', f"sqlite:///{app.config['DATABASE_PATH']}")

    store = PageViewStore(app)
    register_routes(app, store)
    return app


def register_routes(app, store):

    @app.route('/b.js', methods=ALL_METHODS)
    def script():
        if request.method != 'GET':
            return method_not_allowed()

        try:
            body = render_template('b.js', request=request)
        except TemplateError as e:
            return render_error(e)

        resp = Response(body, mimetype='text/javascript')
        resp.headers['Cache-Control'] = NO_CACHE
        return resp

    @app.route('/b.gif', methods=ALL_METHODS)
    def analyze():
        if request.method != 'GET':
            return method_not_allowed()

        try:
            page_view = parse_page_view(request)
        except BeaconError as e:
            current_app.logger.warning(f"Rejected beacon: {e}")
            return plain_text(str(e), 400)

        try:
            store.record(page_view)
        except StorageError as e:
            current_app.logger.exception(f"Failed to record page view: {e}")
            return plain_text('Internal Server Error', 500)

        resp = Response(PIXEL, mimetype='image/gif')
        resp.headers['Cache-Control'] = NO_CACHE
        return resp

    @app.errorhandler(404)
    def not_found(e):
        try:
            return render_template('404.html', request=request), 404
        except TemplateError as err:
            return render_error(err)

    @app.errorhandler(405)
    def unsupported_method(e):
        return method_not_allowed()


def main():
    try:
        app = create_app()
    except StorageError as e:
        # Nothing useful can be served without storage
        print(f"Fatal: {e}", file=sys.stderr)
        sys.exit(1)

    app.logger.info(f"Running on port {app.config['PORT']}...")
    app.run(host='0.0.0.0', port=app.config['PORT'])


if __name__ == '__main__':
    main()
