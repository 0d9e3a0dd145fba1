from .documents import documents_bp
from .flashcards import flashcards_bp
from .health import health_bp
from .highlights import highlights_bp
from .invites import invites_bp
from .quiz import quiz_bp

ALL_BLUEPRINTS = (health_bp, quiz_bp, flashcards_bp, invites_bp, highlights_bp, documents_bp)


def register_blueprints(app):
    """Serve every route bare and under /api; the SPA calls both shapes."""
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)
        app.register_blueprint(blueprint, url_prefix='/api', name=f'{blueprint.name}_api')


__all__ = [
    'documents_bp',
    'flashcards_bp',
    'health_bp',
    'highlights_bp',
    'invites_bp',
    'quiz_bp',
    'register_blueprints',
]
