"""CLI entry point for the file producer."""

import sys
from pathlib import Path

import click
from loguru import logger
from pydantic import ValidationError

from .config import ProducerConfig
from .errors import ConfigError
from .poller import DirectoryPoller

log = logger.bind(stage="cli")

# CLI option name -> ProducerConfig field
_OPTION_FIELDS = {
    "topic": "kafka_topic",
    "bootstrap_server": "kafka_bootstrap_servers",
    "acks": "kafka_acks",
    "client_id": "kafka_client_id",
    "retries": "kafka_retries",
    "retry_backoff_ms": "kafka_retry_backoff_ms",
    "max_in_flight": "kafka_max_in_flight",
    "batch_size_bytes": "kafka_batch_size_bytes",
    "linger_ms": "kafka_linger_ms",
    "security_protocol": "kafka_security_protocol",
    "sasl_mechanism": "kafka_sasl_mechanism",
    "sasl_username": "kafka_sasl_username",
    "sasl_password": "kafka_sasl_password",
    "ssl_cafile": "kafka_ssl_cafile",
    "send_timeout": "send_timeout_seconds",
    "message_location": "message_location",
    "delay_millis": "delay_millis",
    "settle_millis": "settle_millis",
    "max_poll_cycles": "max_poll_cycles",
}


def load_config(config_file: Path | None = None, **overrides) -> ProducerConfig:
    """Build ProducerConfig from .env, environment, and CLI overrides.

    Raises ConfigError with pydantic's message when validation fails.
    """
    kwargs = dict(overrides)
    if config_file is not None:
        kwargs["_env_file"] = config_file
    try:
        return ProducerConfig(**kwargs)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


@click.command()
@click.option("--topic", default=None, help="Kafka topic to publish to.")
@click.option(
    "--bootstrap-server",
    default=None,
    help="Comma-separated list of brokers (host:port).",
)
@click.option(
    "--acks",
    type=click.Choice(["0", "1", "all", "-1"]),
    default=None,
    help="Replicas that must acknowledge a write (0, 1, all).",
)
@click.option("--client-id", default=None, help="Client id reported to the broker.")
@click.option("--retries", type=int, default=None, help="Client-side send retries.")
@click.option("--retry-backoff-ms", type=int, default=None, help="Delay between client retries.")
@click.option(
    "--max-in-flight",
    type=int,
    default=None,
    help="Unacknowledged requests allowed per connection.",
)
@click.option("--batch-size-bytes", type=int, default=None, help="Producer batch size.")
@click.option("--linger-ms", type=int, default=None, help="Time to wait for a batch to fill.")
@click.option("--security-protocol", default=None, help="PLAINTEXT, SSL, SASL_PLAINTEXT or SASL_SSL.")
@click.option("--sasl-mechanism", default=None, help="SASL mechanism, e.g. PLAIN or SCRAM-SHA-512.")
@click.option("--sasl-username", default=None, help="SASL username.")
@click.option("--sasl-password", default=None, help="SASL password.")
@click.option("--ssl-cafile", default=None, help="CA certificate file for SSL.")
@click.option("--send-timeout", type=float, default=None, help="Seconds to wait for an ack.")
@click.option(
    "--message-location",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory containing the files to publish.",
)
@click.option("--delay-millis", type=int, default=None, help="Delay between directory polls.")
@click.option(
    "--settle-millis",
    type=int,
    default=None,
    help="Wait before the first poll so existing files can be checked for stability.",
)
@click.option("--run-once", is_flag=True, help="Poll the directory a single time, then exit.")
@click.option("--no-delete-files", is_flag=True, help="Keep files after they are published.")
@click.option(
    "--structured",
    is_flag=True,
    help="Read key/topic/headers from a header section at the top of each file.",
)
@click.option(
    "--max-poll-cycles",
    type=int,
    default=None,
    help="Stop after this many polls (0 = unlimited).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to .env file.",
)
def main(
    run_once: bool,
    no_delete_files: bool,
    structured: bool,
    verbose: bool,
    config_file: Path | None,
    **options,
) -> None:
    """Publish files from a directory to a Kafka topic."""
    # Only flags given on the command line override env / .env values
    overrides: dict[str, object] = {
        _OPTION_FIELDS[name]: value
        for name, value in options.items()
        if value is not None
    }
    if run_once:
        overrides["run_once"] = True
    if no_delete_files:
        overrides["delete_files"] = False
    if structured:
        overrides["structured_mode"] = True
    if verbose:
        overrides["log_level"] = "DEBUG"

    try:
        config = load_config(config_file, **overrides)
    except ConfigError as e:
        raise click.UsageError(f"Invalid configuration:\n{e}") from e
    config.setup_logging()

    log.info(f"topic: {config.kafka_topic}")
    log.info(f"bootstrap: {config.kafka_bootstrap_servers}")
    log.info(f"acks: {config.kafka_acks.value}")
    log.info(f"messageLocation: {config.message_location}")
    log.info(f"runOnce: {config.run_once}")
    log.info(f"delayInMillis: {config.delay_millis}")
    log.info(f"deleteFiles: {config.delete_files}")
    log.info(f"structured: {config.structured_mode}")

    poller = DirectoryPoller(config)
    poller.install_signal_handlers()
    exit_code = poller.run()
    sys.exit(exit_code)
