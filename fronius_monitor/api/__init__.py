"""
FastAPI application exposing live power flow and historical summaries.
"""
