"""
Services used around the engine: settings persistence and file input.
"""
