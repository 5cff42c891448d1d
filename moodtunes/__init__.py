"""
MoodTunes - facial-landmark mood detection driving playlist recommendations.

This package infers a stabilized mood from facial landmark frames, rate-limits
how often that mood is turned into a playlist search, and serves the results
over HTTP and Server-Sent Events.
"""

__version__ = "0.1.0"
