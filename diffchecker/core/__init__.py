"""
Core comparison engine: data models, normalization, validation,
differs and request dispatch. Has no Qt dependency.
"""
