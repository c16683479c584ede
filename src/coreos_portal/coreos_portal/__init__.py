"""CoreOS Portal package.

This package is organized by feature modules (users, pto, notifications,
reports, warehouse) with a thin Flask controller layer and service/repository
layers underneath.
"""
