"""Document assembly pipeline.

Condition filtering, variable merging, segmentation, segment rendering,
PDF combination and the orchestrator that ties them together.
"""
