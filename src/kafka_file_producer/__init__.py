"""Kafka File Producer -- publish files dropped into a directory to a Kafka topic.

Core modules:
    config     -- Producer configuration via pydantic-settings (KAFKA_* env vars).
                  Frozen after startup; also owns loguru setup.
    cli        -- Click CLI entry point. CLI flags are passed as kwargs to
                  ProducerConfig, overriding env and .env values.
    scanner    -- Directory listing with a two-scan size/mtime stability check.
    translator -- File bytes -> OutboundRecord. Optional structured mode reads
                  key, topic and headers from a header section.
    publisher  -- Lazily-connected kafka-python producer behind a BrokerClient
                  protocol; classifies outcomes as success/retryable/fatal.
    poller     -- Scan -> translate -> publish -> dispose loop with run-once
                  and continuous modes.
    models     -- Enums, records, exit codes.
    errors     -- Exception hierarchy and Kafka error categorization.
"""
