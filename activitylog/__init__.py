"""Activity and access logging with cached device detection and throttling."""
