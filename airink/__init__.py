# AirInk - Gesture-Driven Ink Drawing
# Author: AirInk Team
# Version: 1.0.0

"""
Core modules for the gesture-to-ink pipeline:
- config: Pipeline tunables
- hand_tracking: Landmarks, finger states and the MediaPipe tracker
- gesture_logic: Gesture classification and mode stabilization
- canvas: Stroke accumulation and ink rendering
- pipeline: Per-session frame processing
- camera: Webcam stream handler
- ui: Main application interface
"""

__version__ = "1.0.0"
__author__ = "AirInk Team"
