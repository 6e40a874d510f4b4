"""Application modules.

This package contains the feature modules of the service:
- auth: JWT bearer authentication
- video: Video record management
- upload: Upload pipeline (staging, ffprobe/ffmpeg, object storage)
"""
