"""Migration core: document model, rewriter, backups, oracle detection and orchestration."""
