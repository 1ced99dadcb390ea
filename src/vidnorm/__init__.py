"""vidnorm - media normalization policy engine.

Probes media files with ffprobe, decides the minimum transformation needed
to satisfy a set of output constraints, and drives ffmpeg to produce it.
"""

__version__ = "0.4.0"
