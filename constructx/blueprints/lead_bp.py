"""
ConstructX
Lead blueprint — sales pipeline.

Endpoints:
    LEAD      /api/v1/leads                                 GET, POST  (?status, assigned_to, source, search)
              /api/v1/leads/pipeline                        GET
              /api/v1/leads/<id>                            GET, PUT, DELETE
              /api/v1/leads/<id>/convert-to-project         POST
    CONTACT   /api/v1/leads/<id>/contacts                   GET, POST
              /api/v1/leads/<id>/contacts/<cid>             PUT, DELETE
    ACTIVITY  /api/v1/leads/<id>/activities                 GET, POST
    NOTE      /api/v1/leads/<id>/notes                      GET, POST
"""

import logging

from flask import Blueprint, jsonify, request

from constructx.auth import current_actor
from constructx.blueprints import paginate_query, register_service_errors
from constructx.services import lead_service
from constructx.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

lead_bp = Blueprint("lead", __name__, url_prefix="/api/v1")
register_service_errors(lead_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  LEADS
# ═══════════════════════════════════════════════════════════════════════════

@lead_bp.route("/leads", methods=["GET"])
def list_leads():
    filters = {k: request.args.get(k) for k in ("status", "assigned_to", "source", "search")}
    leads, total = paginate_query(lead_service.list_leads(filters))
    return jsonify({"items": [lead.to_dict() for lead in leads], "total": total})


@lead_bp.route("/leads", methods=["POST"])
def create_lead():
    data = request.get_json(silent=True) or {}
    lead = lead_service.create_lead(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(lead.to_dict()), 201


@lead_bp.route("/leads/pipeline", methods=["GET"])
def pipeline_summary():
    return jsonify(lead_service.pipeline_summary())


@lead_bp.route("/leads/<int:lid>", methods=["GET"])
def get_lead(lid):
    lead = lead_service.get_lead(lid)
    result = lead.to_dict()
    result["contacts"] = [c.to_dict() for c in lead.contacts.order_by("id")]
    return jsonify(result)


@lead_bp.route("/leads/<int:lid>", methods=["PUT"])
def update_lead(lid):
    lead = lead_service.get_lead(lid)
    data = request.get_json(silent=True) or {}
    lead_service.update_lead(lead, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(lead.to_dict())


@lead_bp.route("/leads/<int:lid>", methods=["DELETE"])
def delete_lead(lid):
    lead = lead_service.get_lead(lid)
    lead_service.delete_lead(lead, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Lead deleted"}), 200


@lead_bp.route("/leads/<int:lid>/convert-to-project", methods=["POST"])
def convert_lead(lid):
    lead = lead_service.get_lead(lid)
    data = request.get_json(silent=True) or {}
    result = lead_service.convert_lead_to_project(lead, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "lead": result["lead"].to_dict(),
        "project": result["project"].to_dict(),
    }), 201


# ═══════════════════════════════════════════════════════════════════════════
#  CONTACTS
# ═══════════════════════════════════════════════════════════════════════════

@lead_bp.route("/leads/<int:lid>/contacts", methods=["GET"])
def list_contacts(lid):
    lead = lead_service.get_lead(lid)
    contacts = lead.contacts.order_by("id").all()
    return jsonify({"items": [c.to_dict() for c in contacts], "total": len(contacts)})


@lead_bp.route("/leads/<int:lid>/contacts", methods=["POST"])
def add_contact(lid):
    lead = lead_service.get_lead(lid)
    data = request.get_json(silent=True) or {}
    contact = lead_service.add_contact(lead, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(contact.to_dict()), 201


@lead_bp.route("/leads/<int:lid>/contacts/<int:cid>", methods=["PUT"])
def update_contact(lid, cid):
    lead = lead_service.get_lead(lid)
    data = request.get_json(silent=True) or {}
    contact = lead_service.update_contact(lead, cid, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(contact.to_dict())


@lead_bp.route("/leads/<int:lid>/contacts/<int:cid>", methods=["DELETE"])
def remove_contact(lid, cid):
    lead = lead_service.get_lead(lid)
    lead_service.remove_contact(lead, cid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Contact removed"}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  ACTIVITIES & NOTES
# ═══════════════════════════════════════════════════════════════════════════

@lead_bp.route("/leads/<int:lid>/activities", methods=["GET"])
def list_activities(lid):
    lead = lead_service.get_lead(lid)
    activities = lead_service.list_activities(lead)
    return jsonify({"items": [a.to_dict() for a in activities], "total": len(activities)})


@lead_bp.route("/leads/<int:lid>/activities", methods=["POST"])
def add_activity(lid):
    lead = lead_service.get_lead(lid)
    data = request.get_json(silent=True) or {}
    activity = lead_service.add_activity(lead, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(activity.to_dict()), 201


@lead_bp.route("/leads/<int:lid>/notes", methods=["GET"])
def list_notes(lid):
    lead = lead_service.get_lead(lid)
    notes = lead_service.list_notes(lead)
    return jsonify({"items": [n.to_dict() for n in notes], "total": len(notes)})


@lead_bp.route("/leads/<int:lid>/notes", methods=["POST"])
def add_note(lid):
    lead = lead_service.get_lead(lid)
    data = request.get_json(silent=True) or {}
    note = lead_service.add_note(lead, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(note.to_dict()), 201
