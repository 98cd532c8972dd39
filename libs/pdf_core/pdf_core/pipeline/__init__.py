"""Pipeline: Dispatch → {Inline | Producer → Queue → BoundedWorker} → Finalizer."""
