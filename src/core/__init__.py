"""Core domain package for reviewscope.

Core contains the activity model, the platform registry, the concurrent fetch
orchestrator and the navigation state machine, without any HTTP or terminal
specific code, keeping the logic portable.
"""
