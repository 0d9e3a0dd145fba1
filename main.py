"""Cloud Functions entry point.

Deployed as the HTTPS function ``api``; Firebase Hosting rewrites ``/api/**``
to it, so the Flask app sees the ``/api`` prefixed routes.
"""

from firebase_functions import https_fn, options

from study_buddy import create_app

_app = None


def get_app():
    global _app
    if _app is None:
        _app = create_app()
    return _app


def dispatch(req):
    app = get_app()
    with app.request_context(req.environ):
        return app.full_dispatch_request()


@https_fn.on_request(
    secrets=['GEMINI_API_KEY', 'FLASK_SECRET_KEY'],
    memory=options.MemoryOption.GB_1,
    timeout_sec=300,
)
def api(req: https_fn.Request) -> https_fn.Response:
    return dispatch(req)
