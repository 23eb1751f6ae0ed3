"""
Flowscope: eager, symbolic field-schema composition for dataflow pipelines.

Pipelines are built as a tree of cascades, flows and assemblies. Every stage's
fields are resolved the moment the stage is built, so a pipeline either
composes completely or fails at the offending call, before anything runs.
"""

__version__ = "0.1.0"
