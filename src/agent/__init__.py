"""
agent - Agent orchestration layer.

Contains the tool catalog, the self-modification guard, the system prompt
and the executor that runs the model + tool loop.
Depends on domain/ and application/. Never imports from infrastructure/.
"""
