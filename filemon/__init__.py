"""Engine package for filemon.

Keep the notification channel, path registry, event classification and command
dispatch here so the watcher entry point remains small and testable.
"""

__all__ = ["channel", "classifier", "config", "dispatcher", "errors", "registry"]
