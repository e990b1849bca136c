"""
CounselChat realtime relay: presence, chat routing and notifications
for students and counselors.
"""

__version__ = "1.0.0"
