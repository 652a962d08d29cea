import asyncio
import sys
import time
from loguru import logger

from explorer_indexer.context import IndexerContext, build_context
from explorer_indexer.errors import IndexerError
from explorer_indexer.metrics import (
    start_metrics_server,
    BLOCKS_PROCESSED,
    LATEST_BLOCK_PROCESSING_TIME,
    LATEST_PROCESSED_BLOCK,
    CHAIN_TIP_BLOCK,
    CHAIN_TIP_LAG,
)
from explorer_indexer.services import Block, MessageChannel
from explorer_indexer.utils import MissingBlockTracker, load_config


async def consume_messages(channel: MessageChannel) -> None:
    async for message in channel:
        payload = message.payload or {}
        logger.debug(f"{message.topic}: {payload.get('hash')}")


async def process_block(block_number: int, context: IndexerContext, channel: MessageChannel) -> dict:
    block = Block(block_number, context, channel=channel)
    await block.fetch()
    return await block.save()


async def main(config_file: str = "config.yml"):
    # Save logs to file
    logger.add("logs/indexer.log", rotation="100 MB", retention="10 days")

    try:
        config = load_config(config_file)
        context = build_context(config)
        chain_name = context.chain

        # Start metrics server
        start_metrics_server(config.metrics.port, addr='0.0.0.0')
        BLOCKS_PROCESSED.labels(chain=chain_name).inc(0)
        LATEST_BLOCK_PROCESSING_TIME.labels(chain=chain_name).set(0)
        LATEST_PROCESSED_BLOCK.labels(chain=chain_name).set(0)
        CHAIN_TIP_BLOCK.labels(chain=chain_name).set(0)
        CHAIN_TIP_LAG.labels(chain=chain_name).set(0)
        logger.info(f"Initialized metrics for chain: {chain_name}")

        channel = MessageChannel()
        consumer = asyncio.create_task(consume_messages(channel))
        tracker = MissingBlockTracker(config.get('missing_blocks_file', 'missing_blocks.json'))

        logger.info("Starting indexing process")
        logger.info(f"Processing {chain_name} chain")

        # Blocks kept behind the tip
        confirmations = 2

        last_processed_block = context.data_manager.get_last_processed_block()
        block_number_to_process = last_processed_block + 1 if last_processed_block > 0 else 0
        logger.info(f"Last processed block: {last_processed_block}")
        logger.info(f"Starting indexer from block {block_number_to_process}")

        while True:
            current_block_number = await context.node.get_block_number()
            CHAIN_TIP_BLOCK.labels(chain=chain_name).set(current_block_number)

            # Failed blocks are retried while waiting for the tip
            retry_block = tracker.get_first_block()
            if block_number_to_process <= current_block_number - confirmations:
                block_number = block_number_to_process
            elif retry_block is not None:
                block_number = retry_block
            else:
                logger.info(f"Waiting for block {block_number_to_process} to be {confirmations} blocks behind tip ({current_block_number})")
                await asyncio.sleep(1)
                continue

            block_start_time = time.time()
            try:
                saved = await process_block(block_number, context, channel)
            except IndexerError as e:
                logger.error(f"Error processing block {block_number} ({e.kind.value}): {e}")
                tracker.add_block(block_number, e.kind.value)
                if block_number != block_number_to_process:
                    await asyncio.sleep(1)
            else:
                tracker.remove_block(block_number)
                LATEST_BLOCK_PROCESSING_TIME.labels(chain=chain_name).set(time.time() - block_start_time)
                BLOCKS_PROCESSED.labels(chain=chain_name).inc()
                LATEST_PROCESSED_BLOCK.labels(chain=chain_name).set(block_number)
                CHAIN_TIP_LAG.labels(chain=chain_name).set(current_block_number - block_number)
                logger.info(f"Saved block {block_number}: {saved['txs']} txs, {saved['addresses']} addresses")

            if block_number == block_number_to_process:
                block_number_to_process += 1

    except KeyError as e:
        logger.error(f"Configuration error: Missing key {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid configuration value: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"An unexpected error occurred: {e}")
        sys.exit(1)
    finally:
        if 'consumer' in locals():
            consumer.cancel()


def run():
    try:
        # Run the main function asynchronously
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Program interrupted by user. Exiting.")
    except Exception as e:
        logger.exception(f"An unexpected error occurred in the main loop: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
