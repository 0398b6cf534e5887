"""Real IP filter: event pipeline and HTTP host for trust-chain evaluation."""
