"""Training attendance package.

Proximity-based attendance for training programs: facilitators issue
short-lived signed QR tokens, trainees check in with the token and/or their
live geolocation, and every (trainee, session, day) yields at most one
attendance record.

Organized by feature modules (tokens, attendance, reports, ...) with a thin
Flask controller layer over service/repository layers.
"""
