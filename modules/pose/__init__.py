"""
Pose landmark utilities.

This package defines the 33-landmark PoseFrame data model and provider adapters
(e.g., MediaPipe Pose) so the posture core never depends on a specific model.
"""

