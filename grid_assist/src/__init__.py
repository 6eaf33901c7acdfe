"""
Grid-assist controller daemon package.

Reads grid-meter and battery telemetry events, runs an integral controller
that keeps grid import near a small target while the battery is above its
reserve, and writes a bounded setpoint to the battery actuator.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-001)

TODO:
- None
"""
