"""palaver - conversational bot SDK.

Turn context and middleware pipeline, pluggable state storage, dialogs and
prompts, QnA Maker integration and Bot Framework connector bindings.
"""

__version__ = "0.4.0"
