import pytest

from explorer_indexer.services import Addresses

from conftest import make_address, make_hash


def test_add_returns_one_instance_per_hash(context):
    addresses = Addresses(context)
    first = addresses.add(make_address(0xabcdef))
    second = addresses.add("0x" + make_address(0xabcdef)[2:].upper())
    assert first is second
    assert len(addresses) == 1
    assert make_address(0xabcdef) in addresses

def test_create_address_stays_outside_registry(context):
    addresses = Addresses(context, block=10)
    registered = addresses.add(make_address(1))
    historical = addresses.create_address(make_address(1), block=9)
    assert historical is not registered
    assert historical.block_number == 9
    assert registered.block_number == 10
    assert addresses.get(make_address(1)) is registered
    assert len(addresses) == 1

def test_add_attaches_missing_deployment(context):
    addresses = Addresses(context)
    address = addresses.add(make_address(2))
    deployment = {'hash': make_hash(2), 'receipt': {'contractAddress': make_address(2)}}
    assert addresses.add(make_address(2), deployment=deployment) is address
    assert address.deployment == deployment

    other = {'hash': make_hash(3), 'receipt': {'contractAddress': make_address(2)}}
    addresses.add(make_address(2), deployment=other)
    assert address.deployment == deployment

@pytest.mark.asyncio
async def test_fetch_and_save(context, node, data_manager):
    addresses = Addresses(context, block=5)
    for seed in (1, 2, 3):
        addresses.add(make_address(seed))
    await addresses.get(make_address(1)).fetch()
    calls = node.calls['get_balance']

    documents = await addresses.fetch()
    assert [document['address'] for document in documents] == [make_address(seed) for seed in (1, 2, 3)]
    assert node.calls['get_balance'] == calls + 2

    assert await addresses.save() == 3
    assert await addresses.save() == 0
    assert len(data_manager.find('addresses', {})) == 3
