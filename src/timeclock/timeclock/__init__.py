"""Timeclock package.

Work session time-tracking engine organized by feature modules (geofence,
sessions, attendance) with a thin Flask controller layer on top of
store-agnostic service/repository layers.
"""
