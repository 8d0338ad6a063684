"""Transfer articulation finder: catalog client, pipelines, API.

This package resolves a receiving institution in the transfer-agreement
catalog, downloads each partner's agreement for a major, and reports which
partners articulate a given course.
"""
