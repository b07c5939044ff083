"""dappy — ledger-resident identity registries.

Content-pointer registries (social connections, filesystem changes) and a
non-transferable, expiring user verification token registry, all sharing a
single owner/manager access-control primitive.
"""

__version__ = "0.1.0"
