"""
Posture monitoring core.

Turns a stream of PoseFrames into stable joint positions, an ear-shoulder
deviation angle, feedback text and debounced audio/snapshot alerts. Entry
point: `modules.posture.session.PostureSession.process_frame`.
"""

