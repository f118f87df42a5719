from lockbox_core.core.observable import ObservableValue

__all__ = ["ObservableValue"]
