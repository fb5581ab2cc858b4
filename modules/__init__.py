"""
Hand Particles modules
======================

    - capture: webcam and scripted frame sources
    - detection: MediaPipe hand landmarks, pinch and center measurements
    - control: gesture-to-parameter mapping and smoothing
    - particles: shape templates and the lerped point cloud
    - visualization: point renderer and HUD
    - utils: configuration, logging, performance monitoring
"""

__version__ = "1.0.0"
