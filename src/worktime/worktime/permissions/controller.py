from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.web import current_actor, json_body, json_endpoint
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.permission_service

    @app.route("/api/permissions", methods=["POST"], endpoint="api_permission_create")
    @json_endpoint
    def create():
        user_id, role = current_actor()
        data = json_body()
        req = service.submit(
            actor_id=user_id,
            actor_role=role,
            start_date=parse_iso_date(data.get("start_date") or ""),
            start_time=data.get("start_time") or "",
            end_date=parse_iso_date(data.get("end_date") or ""),
            end_time=data.get("end_time") or "",
            duration=data.get("duration") or "",
            reason=data.get("reason") or "",
            work_description=data.get("work_description") or "",
            assigned_by=data.get("assigned_by"),
            responsible_person=data.get("responsible_person"),
        )
        return {"message": "Đã gửi đơn xin phép", "permission": req.to_dict()}, 201

    @app.route("/api/permissions", methods=["GET"], endpoint="api_permission_mine")
    @json_endpoint
    def mine():
        user_id, _ = current_actor()
        return {"permissions": [r.to_dict() for r in service.list_mine(employee_id=user_id)]}

    @app.route("/api/permissions/pending", methods=["GET"], endpoint="api_permission_pending")
    @json_endpoint
    def pending():
        user_id, role = current_actor()
        return {"permissions": [r.to_dict() for r in service.pending_for(actor_id=user_id, actor_role=role)]}

    @app.route("/api/permissions/<int:request_id>", methods=["GET"], endpoint="api_permission_get")
    @json_endpoint
    def get(request_id: int):
        user_id, role = current_actor()
        return {"permission": service.get(request_id=request_id, viewer_id=user_id, viewer_role=role).to_dict()}

    @app.route("/api/permissions/<int:request_id>/approve", methods=["POST"], endpoint="api_permission_approve")
    @json_endpoint
    def approve(request_id: int):
        user_id, role = current_actor()
        req = service.approve(request_id=request_id, actor_id=user_id, actor_role=role, comments=json_body().get("comments"))
        return {"permission": req.to_dict()}

    @app.route("/api/permissions/<int:request_id>/reject", methods=["POST"], endpoint="api_permission_reject")
    @json_endpoint
    def reject(request_id: int):
        user_id, role = current_actor()
        req = service.reject(request_id=request_id, actor_id=user_id, actor_role=role, reason=json_body().get("reason") or "")
        return {"permission": req.to_dict()}

    @app.route("/api/permissions/<int:request_id>/cancel", methods=["POST"], endpoint="api_permission_cancel")
    @json_endpoint
    def cancel(request_id: int):
        user_id, _ = current_actor()
        return {"permission": service.cancel(request_id=request_id, actor_id=user_id).to_dict()}
