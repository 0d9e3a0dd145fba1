from flask import Blueprint

from study_buddy import runtime
from study_buddy.services import prompt_registry

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz', methods=['GET'])
def healthz():
    return runtime.jsonify({
        'status': 'ok',
        'firebase': runtime.db is not None,
        'storage': runtime.bucket is not None,
        'gemini': runtime.client is not None,
        'prompts': prompt_registry.get_prompt_metadata(),
    })
