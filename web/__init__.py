"""
HTTP interface for the appraisal report engine.
"""
