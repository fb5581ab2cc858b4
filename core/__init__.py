"""
Core building blocks shared by every module: domain types, the event
bus, the error hierarchy and the per-frame pipeline.
"""
