"""Zone Application Deployer (ZAD).

Periodic maintenance job that keeps the platform's routing zone application
deployed at the version the config servers run:
 - decides from a fresh node snapshot whether a deploy is needed
 - downloads the zone application bundle for that version
 - issues one time-bounded deploy per tick, leaving retries to the next tick
"""
