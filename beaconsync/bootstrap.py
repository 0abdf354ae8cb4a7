import logging
from typing import NamedTuple

import requests

from beaconsync._utils.logging import (
    get_logger,
    setup_log_levels,
    setup_stderr_logging,
)
from beaconsync.chaindb import SQLChainDB
from beaconsync.chaindb.orm import create_session, open_chain_database
from beaconsync.config import Config
from beaconsync.constants import BLOCKS_METADATA_KEY
from beaconsync.eth1 import (
    ChainIdentityVerifier,
    ETH1DepositService,
    JSONRPCClient,
)
from beaconsync.services import (
    CanonicalityService,
    Metadata,
    MetadataService,
)

logger = get_logger('beaconsync.bootstrap')


def install_logging(config: Config) -> logging.Handler:
    """
    Log to stderr at the level configured for the root logger (the ``None`` key of
    ``config.log_levels``, INFO if absent) and apply the remaining per-logger levels.
    """
    stderr_level = config.log_levels.get(None, logging.INFO)
    _, handler_stderr = setup_stderr_logging(stderr_level)
    setup_log_levels(config.log_levels)
    return handler_stderr


def open_chaindb(config: Config) -> SQLChainDB:
    logger.debug("Opening chain database at %s", config.database_uri)
    session = create_session(config.database_uri)
    return SQLChainDB(open_chain_database(session, str(config.database_path)))


class BeaconSyncServices(NamedTuple):
    chaindb: SQLChainDB
    client: JSONRPCClient
    verifier: ChainIdentityVerifier
    blocks_metadata: MetadataService[Metadata]
    eth1_deposits: ETH1DepositService
    canonicality: CanonicalityService

    def close(self) -> None:
        self.client.close()
        self.chaindb.session.close()


def build_services(config: Config,
                   http_session: requests.Session = None,
                   chaindb: SQLChainDB = None) -> BeaconSyncServices:
    """
    Wire up every service of a single indexer instance from ``config``. Nothing talks
    to the ETH1 endpoint until a service is used.
    """
    if chaindb is None:
        chaindb = open_chaindb(config)

    client = JSONRPCClient(
        config.eth1_endpoint,
        session=http_session,
        timeout=config.request_timeout,
        max_error_body_size=config.max_error_body_size,
    )
    verifier = ChainIdentityVerifier(
        client,
        config.expected_chain_id,
        reverify_interval=config.reverify_interval,
    )
    return BeaconSyncServices(
        chaindb=chaindb,
        client=client,
        verifier=verifier,
        blocks_metadata=MetadataService(chaindb, BLOCKS_METADATA_KEY, Metadata),
        eth1_deposits=ETH1DepositService(
            client,
            verifier,
            chaindb,
            config.deposit_contract_address,
            start_block=config.deposit_contract_deploy_block,
            range_size=config.eth1_log_range_size,
            blocks_confirmed=config.eth1_blocks_confirmed,
        ),
        canonicality=CanonicalityService(chaindb, config.slots_per_epoch),
    )
