from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date, parse_optional_date
from ..common.validators import optional_enum
from ..common.web import current_actor, int_arg, json_body, json_endpoint
from ..core.enums import ApprovalLevel, RegularizationType, RequestStatus
from ..container import Container
from .repository import RegularizationFilter


def register(app: Flask, container: Container) -> None:
    service = container.regularization_service

    @app.route("/api/regularizations", methods=["POST"], endpoint="api_regularization_create")
    @json_endpoint
    def create():
        user_id, role = current_actor()
        data = json_body()
        req = service.submit(
            actor_id=user_id,
            actor_role=role,
            attendance_date=parse_iso_date(data.get("attendance_date") or ""),
            request_type=data.get("request_type"),
            reason=data.get("reason") or "",
            requested_check_in=data.get("requested_check_in"),
            requested_check_out=data.get("requested_check_out"),
            requested_status=data.get("requested_status"),
            priority=data.get("priority"),
            supporting_documents=data.get("supporting_documents") or (),
        )
        return {"message": "Đã gửi yêu cầu điều chỉnh", "regularization": req.to_dict()}, 201

    @app.route("/api/regularizations", methods=["GET"], endpoint="api_regularization_list")
    @json_endpoint
    def list_requests():
        user_id, role = current_actor()
        flt = RegularizationFilter(
            employee_id=int_arg("employee_id"),
            current_level=optional_enum(ApprovalLevel, request.args.get("level"), "Cấp duyệt"),
            status=optional_enum(RequestStatus, request.args.get("status"), "Trạng thái"),
            request_type=optional_enum(RegularizationType, request.args.get("request_type"), "Loại yêu cầu"),
            start_date=parse_optional_date(request.args.get("start")),
            end_date=parse_optional_date(request.args.get("end")),
        )
        rows = service.list(viewer_id=user_id, viewer_role=role, flt=flt, limit=int_arg("limit", 200))
        return {"regularizations": [r.to_dict() for r in rows], "count": len(rows)}

    @app.route("/api/regularizations/pending", methods=["GET"], endpoint="api_regularization_pending")
    @json_endpoint
    def pending():
        user_id, role = current_actor()
        rows = service.pending_for(actor_id=user_id, actor_role=role)
        return {"regularizations": [r.to_dict() for r in rows], "count": len(rows)}

    @app.route("/api/regularizations/statistics", methods=["GET"], endpoint="api_regularization_statistics")
    @json_endpoint
    def statistics():
        user_id, role = current_actor()
        stats = service.statistics(
            viewer_id=user_id,
            viewer_role=role,
            employee_id=int_arg("employee_id"),
            start_date=parse_optional_date(request.args.get("start")),
            end_date=parse_optional_date(request.args.get("end")),
        )
        return {"statistics": stats}

    @app.route("/api/regularizations/config", methods=["GET"], endpoint="api_regularization_config")
    @json_endpoint
    def config():
        return {"config": service.config()}

    @app.route("/api/regularizations/<int:request_id>", methods=["GET"], endpoint="api_regularization_get")
    @json_endpoint
    def get(request_id: int):
        user_id, role = current_actor()
        return {"regularization": service.get(request_id=request_id, viewer_id=user_id, viewer_role=role).to_dict()}

    @app.route("/api/regularizations/<int:request_id>/approve", methods=["POST"], endpoint="api_regularization_approve")
    @json_endpoint
    def approve(request_id: int):
        user_id, role = current_actor()
        data = json_body()
        req = service.approve(request_id=request_id, actor_id=user_id, actor_role=role, comments=data.get("comments"))
        return {"message": "Đã duyệt yêu cầu", "regularization": req.to_dict()}

    @app.route("/api/regularizations/<int:request_id>/reject", methods=["POST"], endpoint="api_regularization_reject")
    @json_endpoint
    def reject(request_id: int):
        user_id, role = current_actor()
        data = json_body()
        req = service.reject(request_id=request_id, actor_id=user_id, actor_role=role, reason=data.get("reason") or "")
        return {"message": "Đã từ chối yêu cầu", "regularization": req.to_dict()}

    @app.route("/api/regularizations/<int:request_id>/cancel", methods=["POST"], endpoint="api_regularization_cancel")
    @json_endpoint
    def cancel(request_id: int):
        user_id, _ = current_actor()
        req = service.cancel(request_id=request_id, actor_id=user_id)
        return {"message": "Đã huỷ yêu cầu", "regularization": req.to_dict()}

    @app.route("/api/regularizations/<int:request_id>/reapply", methods=["POST"], endpoint="api_regularization_reapply")
    @json_endpoint
    def reapply(request_id: int):
        _, role = current_actor()
        req = service.reapply(request_id=request_id, actor_role=role)
        return {"regularization": req.to_dict()}
