"""Worktime package.

Attendance tracking plus sequential approval workflows (regularization, permission),
organized by feature modules with a thin Flask controller layer and service/repository layers.
"""
