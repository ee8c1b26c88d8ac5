"""
External collaborators of the tracker: storage backends, OCR, identity
and reminder delivery. Each subpackage hides one boundary behind a small
interface so the ledger and flows can be tested with in-memory fakes.
"""
