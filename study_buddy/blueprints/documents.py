from flask import Blueprint, request

from study_buddy import runtime
from study_buddy.services import document_api_service

documents_bp = Blueprint('documents', __name__)


@documents_bp.route('/extract-text', methods=['POST'])
def extract_text():
    return document_api_service.extract_text(runtime, request)


@documents_bp.route('/document/text', methods=['POST'])
def document_text():
    return document_api_service.document_text(runtime, request)


@documents_bp.route('/documents/process', methods=['POST'])
def process_document():
    return document_api_service.process_document(runtime, request)
