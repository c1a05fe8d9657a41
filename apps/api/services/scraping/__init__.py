"""Creator scrape lifecycle: launch, reconcile, fetch, normalize."""
