from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local, parse_optional_date
from ..common.validators import optional_enum
from ..common.web import current_actor, int_arg, json_body, json_endpoint
from ..core.enums import Location, Role
from ..core.roles import require_role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/checkin", methods=["POST"], endpoint="api_checkin")
    @json_endpoint
    def checkin():
        user_id, _ = current_actor()
        data = json_body()
        location = optional_enum(Location, data.get("location"), "Địa điểm") or Location.OFFICE
        record = service.check_in(user_id, location=location, notes=data.get("notes"))
        return {"message": "Chấm công vào ca thành công!", "attendance": record.to_dict()}, 201

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="api_checkout")
    @json_endpoint
    def checkout():
        user_id, _ = current_actor()
        data = json_body()
        record = service.check_out(user_id, notes=data.get("notes"))
        return {"message": "Chấm công tan ca thành công!", "attendance": record.to_dict()}

    @app.route("/api/attendance/activity", methods=["POST"], endpoint="api_activity")
    @json_endpoint
    def activity():
        user_id, _ = current_actor()
        record = service.record_activity(user_id)
        return {"last_activity_at": record.last_activity_at.isoformat()}

    @app.route("/api/attendance/break/start", methods=["POST"], endpoint="api_break_start")
    @json_endpoint
    def break_start():
        user_id, _ = current_actor()
        return {"attendance": service.start_break(user_id).to_dict()}

    @app.route("/api/attendance/break/end", methods=["POST"], endpoint="api_break_end")
    @json_endpoint
    def break_end():
        user_id, _ = current_actor()
        return {"attendance": service.end_break(user_id).to_dict()}

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_attendance_today")
    @json_endpoint
    def today():
        user_id, _ = current_actor()
        record = service.get_today_record(user_id, now_local().date())
        return {"attendance": record.to_dict() if record else None}

    @app.route("/api/attendance/my", methods=["GET"], endpoint="api_attendance_my")
    @json_endpoint
    def my_history():
        user_id, _ = current_actor()
        rows = service.get_history(
            user_id,
            start_date=parse_optional_date(request.args.get("start")),
            end_date=parse_optional_date(request.args.get("end")),
        )
        return {"attendance": [r.to_dict() for r in rows]}

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="api_attendance_summary")
    @json_endpoint
    def summary():
        user_id, _ = current_actor()
        now = now_local()
        result = service.monthly_summary(
            user_id,
            year=int_arg("year", now.year),
            month=int_arg("month", now.month),
            now=now,
        )
        return {"summary": result.to_dict()}

    @app.route("/api/attendance/auto-checkout/status", methods=["GET"], endpoint="api_auto_checkout_status")
    @json_endpoint
    def auto_checkout_status():
        return {
            "scheduler": container.auto_checkout_scheduler.status(),
            "policy": service.get_policy().to_mapping(),
        }

    @app.route("/api/attendance/auto-checkout/run", methods=["POST"], endpoint="api_auto_checkout_run")
    @json_endpoint
    def auto_checkout_run():
        _, role = current_actor()
        require_role(role, Role.HR, Role.VP_ADMIN)
        return {"result": container.auto_checkout_scheduler.run_once()}
