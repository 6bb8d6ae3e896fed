"""
Audit Event Service
===================

A small audit-log REST service using:
- PostgreSQL (JSONB) as the document store for event records
- FastAPI for the HTTP surface
- Query-string filters translated into document-store filter expressions
"""

__version__ = "1.0.0"
__author__ = "Audit Service Team"
