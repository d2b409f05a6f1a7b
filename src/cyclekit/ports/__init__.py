"""
Front ends for the cycling engine.

- ptk: prompt_toolkit key-binding adapters
- switcher: full-screen tmux window switcher built on them
"""
