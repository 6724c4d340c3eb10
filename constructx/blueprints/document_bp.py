"""
ConstructX
Document blueprint — documents, versions, approvals and comments.

Endpoints:
    DOCUMENT  /api/v1/projects/<pid>/documents              GET, POST  (?category, status, search)
              /api/v1/projects/<pid>/document-categories    GET
              /api/v1/documents/<id>                        GET, PUT, DELETE
              /api/v1/documents/<id>/archive                POST
    VERSION   /api/v1/documents/<id>/versions               GET, POST
    APPROVAL  /api/v1/documents/<id>/approval               POST  body: {approvers: [..]}
              /api/v1/documents/<id>/review                 POST  body: {status, comments?, approver?}
    COMMENT   /api/v1/documents/<id>/comments               GET, POST
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import document_service, project_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

document_bp = Blueprint("document", __name__, url_prefix="/api/v1")
register_service_errors(document_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  DOCUMENTS
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route("/projects/<int:pid>/documents", methods=["GET"])
def list_documents(pid):
    project_service.get_project(pid)
    filters = {k: request.args.get(k) for k in ("category", "status", "search")}
    docs, total = paginate_query(document_service.list_documents(pid, filters))
    return jsonify({"items": [d.to_dict() for d in docs], "total": total})


@document_bp.route("/projects/<int:pid>/documents", methods=["POST"])
def create_document(pid):
    project_service.get_project(pid)
    data = request.get_json(silent=True) or {}
    doc = document_service.create_document(pid, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(doc.to_dict()), 201


@document_bp.route("/projects/<int:pid>/document-categories", methods=["GET"])
def document_categories(pid):
    project_service.get_project(pid)
    rows = document_service.category_counts(pid)
    return jsonify({"items": rows, "total": len(rows)})


@document_bp.route("/documents/<int:did>", methods=["GET"])
def get_document(did):
    return jsonify(document_service.get_document(did).to_dict(include_children=True))


@document_bp.route("/documents/<int:did>", methods=["PUT"])
def update_document(did):
    doc = document_service.get_document(did)
    data = request.get_json(silent=True) or {}
    document_service.update_document(doc, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(doc.to_dict())


@document_bp.route("/documents/<int:did>", methods=["DELETE"])
def delete_document(did):
    doc = document_service.get_document(did)
    document_service.delete_document(doc, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Document deleted"}), 200


@document_bp.route("/documents/<int:did>/archive", methods=["POST"])
def archive_document(did):
    doc = document_service.get_document(did)
    document_service.archive_document(doc)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(doc.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  VERSIONS
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents/<int:did>/versions", methods=["GET"])
def version_history(did):
    doc = document_service.get_document(did)
    versions = document_service.version_history(doc)
    return jsonify({"items": versions, "total": len(versions)})


@document_bp.route("/documents/<int:did>/versions", methods=["POST"])
def upload_version(did):
    doc = document_service.get_document(did)
    data = request.get_json(silent=True) or {}
    document_service.upload_new_version(doc, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(doc.to_dict(include_children=True)), 201


# ═══════════════════════════════════════════════════════════════════════════
#  APPROVALS & COMMENTS
# ═══════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents/<int:did>/approval", methods=["POST"])
def request_approval(did):
    doc = document_service.get_document(did)
    data = request.get_json(silent=True) or {}
    document_service.request_approval(doc, data.get("approvers"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(doc.to_dict(include_children=True))


@document_bp.route("/documents/<int:did>/review", methods=["POST"])
def review_document(did):
    doc = document_service.get_document(did)
    data = request.get_json(silent=True) or {}
    approver = data.get("approver") or current_actor()
    document_service.review_document(doc, approver, data.get("status"), data.get("comments", ""))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(doc.to_dict(include_children=True))


@document_bp.route("/documents/<int:did>/comments", methods=["GET"])
def list_comments(did):
    doc = document_service.get_document(did)
    comments = document_service.list_comments(doc)
    return jsonify({"items": [c.to_dict() for c in comments], "total": len(comments)})


@document_bp.route("/documents/<int:did>/comments", methods=["POST"])
def add_comment(did):
    doc = document_service.get_document(did)
    data = request.get_json(silent=True) or {}
    comment = document_service.add_comment(doc, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comment.to_dict()), 201
