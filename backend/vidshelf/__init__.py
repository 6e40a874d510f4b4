"""vidshelf backend application.

Accepts video and thumbnail uploads over HTTP, inspects and remuxes videos
for fast-start playback, stores them in object storage and records the
resulting URL on the video record.

Modules:
    - core: Configuration, logging, metrics, database, object storage
    - modules.auth: JWT bearer authentication
    - modules.video: Video records
    - modules.upload: Upload-to-storage pipeline
"""

__version__ = "0.1.0"
