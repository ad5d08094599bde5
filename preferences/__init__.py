"""preferences/ -- Saved dietary constraints folded into meal assistant prompts.

Layer rule: preferences/ imports only stdlib, third-party libraries and core/.
"""
