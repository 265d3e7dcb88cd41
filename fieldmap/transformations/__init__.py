"""Transformation catalog, execution and pipelines.

Provides the TransformKind catalog, an executor that applies one
transformation to one value, a pipeline that applies ordered steps to a
record, and a registry of saved pipeline definitions.
"""
