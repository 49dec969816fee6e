"""Pure scheduling and workflow rules shared by the service and its clients.

Nothing in this package performs I/O; the backing API and the client
orchestration layer both import these modules so the same rules run on
each side of the HTTP boundary.
"""
