"""
recurring_batch -- batch and scheduled generation of recurring templates.

Runs the kernel's MaterializationService over every active template with
per-template isolation, on demand (GenerationBatchExecutor) or on a
polling interval (GenerationScheduler).
"""
