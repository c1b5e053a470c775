"""
Sales Call Recorder: records sales calls, transcribes and analyzes them,
and drafts follow-up emails.
"""
__version__ = "1.0.0"
