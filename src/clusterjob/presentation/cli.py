"""CLI interface for the cluster job workflow."""
import sys
import logging
import argparse
from pathlib import Path

from dotenv import load_dotenv

from clusterjob.domain.exceptions import ClusterJobError
from clusterjob.infrastructure.config import ConfigLoader, ClusterConfig
from clusterjob.infrastructure.storage import S3StorageClient
from clusterjob.infrastructure.ec2cluster import Ec2ClusterClient
from clusterjob.application.orchestrator import ClusterJobOrchestrator
from clusterjob.application.workflows import KMEANS_DEMO
from clusterjob.shared.logging import setup_logger, get_logger
from clusterjob.shared.metrics import MetricsCollector


def create_orchestrator_from_config(config: ClusterConfig) -> ClusterJobOrchestrator:
    """Create orchestrator with all dependencies from config."""
    return ClusterJobOrchestrator(
        config=config,
        storage=S3StorageClient(config, logger=get_logger('clusterjob.storage')),
        jobs=Ec2ClusterClient(config, logger=get_logger('clusterjob.ec2cluster')),
        metrics=MetricsCollector(),
        logger=get_logger('clusterjob.orchestrator'),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload inputs, run the Kmeans MPI demo on ec2cluster, download results"
    )
    parser.add_argument('--config', type=Path, default=Path('config.yml'), help='Config YAML file (default: config.yml)')
    parser.add_argument('--poll-interval', type=float, help='Seconds between job status checks (default: 5)')
    parser.add_argument('--job-timeout', type=float, help='Give up waiting after this many seconds (default: wait forever)')
    parser.add_argument('--cancel-on-timeout', action='store_true', help='Cancel the job when --job-timeout is reached')
    parser.add_argument('--log-file', type=Path, help='Also append logs to this file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger('clusterjob', level=log_level, log_file=args.log_file)
    logger = get_logger('clusterjob.cli')

    load_dotenv()

    try:
        overrides = {
            'poll_interval': args.poll_interval,
            'job_timeout': args.job_timeout,
            'cancel_on_timeout': True if args.cancel_on_timeout else None,
        }
        config = ConfigLoader(config_path=args.config).load(overrides=overrides)

        logger.info("=" * 60)
        logger.info(f"Job service: {config.rest_url}")
        logger.info(f"Buckets: in={config.inputbucket} out={config.outputbucket}")
        logger.info(f"Workflow: {KMEANS_DEMO.name}")
        logger.info("=" * 60)

        orchestrator = create_orchestrator_from_config(config)
        result = orchestrator.run(KMEANS_DEMO)

        logger.info("=" * 60)
        logger.info(f"Job #{result.job_id} {result.status.state}")
        for path in result.downloaded:
            logger.info(f"  {path}")
        return 0

    except ClusterJobError as e:
        logger.error(f"Workflow error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    except Exception as e:
        logger.exception(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
