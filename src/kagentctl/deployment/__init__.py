"""Release lifecycle deployment package.

- shell_commands: helm invocation layer
- lifecycle: environment resolution, probing, safety gating, backup,
  execution and orchestration of the two-layer release set
"""
