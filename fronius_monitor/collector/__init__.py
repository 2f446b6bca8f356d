"""
Live collection from Fronius inverters.

Contains the Solar API client and the daemon that records snapshots on a
fixed interval.
"""
