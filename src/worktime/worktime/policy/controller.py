from __future__ import annotations

from flask import Flask

from ..common.web import current_actor, json_body, json_endpoint
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.policy_service

    @app.route("/api/settings/work-hours", methods=["GET"], endpoint="api_work_hours_get")
    @json_endpoint
    def get_work_hours():
        return {"work_hours": service.get_policy().to_mapping()}

    @app.route("/api/settings/work-hours", methods=["PUT"], endpoint="api_work_hours_update")
    @json_endpoint
    def update_work_hours():
        user_id, role = current_actor()
        policy = service.update_policy(actor_role=role, changes=json_body(), updated_by=user_id)
        return {"message": "Đã cập nhật giờ làm việc", "work_hours": policy.to_mapping()}
