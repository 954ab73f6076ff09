"""
trade_manager
=============

Supervisor + REST control surface.  Pauses trading when a service stops
heart-beating and exposes /status, /pause, /resume.
"""
