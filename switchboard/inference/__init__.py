"""Session inference: the rule walking state machine and its local rule handlers.

Import concrete pieces from their modules:

    from switchboard.inference.orchestrator import InferenceOrchestrator
    from switchboard.inference.errors import ConfigurationError
"""
