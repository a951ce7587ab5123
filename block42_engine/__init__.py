"""
Block42 Program Simulator

Core modules:
- grid: immutable map model, coordinates and overlay-aware colour lookup
- commands: command model, program (f0/f1/f2) and the "type[:condition]" wire format
- models: level config, game state and result dataclasses
- engine: deterministic interpreter producing the replayable state trace
- timeline: per-step pending-instruction queue snapshots
- validator: success/failure classification of a final state
- trace: helpers for producing human-readable step traces (no behavior changes)
"""
