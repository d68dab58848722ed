"""
API layer of the property listings service: models, dependencies and routes.
"""
