"""Boundary adapters.

Each transport gets one adapter that converts in-process failures into its
native error representation; both share the pipeline in ``base``.
"""
