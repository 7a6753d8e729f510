"""Org module — Employee, Department models, hierarchy rules and services."""

from hrms.org.models import Department, Employee

__all__ = ["Employee", "Department"]
