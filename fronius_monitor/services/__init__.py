"""
Domain services: snapshot store access, range resolution and the historical
aggregation engine.
"""
