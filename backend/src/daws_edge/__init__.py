"""Edge handlers for the DAWS community website.

Three Lambda handlers sit between public form submissions and external
providers: form forwarding by email (Resend), newsletter audience sync
(Mailchimp) and event sync (Eventbrite).
"""

__version__ = "0.1.0"
