import pytest

from explorer_indexer.data_types import AddressType, DESTROYED_BY, LAST_BLOCK_MINED
from explorer_indexer.errors import NotFoundError, ValidationError
from explorer_indexer.services import Address

from conftest import BRIDGE, CONTRACT_CODE, NATIVE_TEST_CONTRACT, make_address, make_hash


def fake_internal_tx(seed: int, destroyed: str) -> dict:
    return {
        'internalTxId': format(seed, '030x'),
        'transactionHash': make_hash(seed),
        'blockNumber': 10,
        'type': 'suicide',
        'action': {'address': destroyed, 'refundAddress': make_address(seed), 'balance': '0'},
    }

def mined_block(number: int, miner: str) -> dict:
    return {'number': number, 'hash': make_hash(50_000 + number), 'miner': miner, 'transactions': []}


class TestAddressType:
    def test_account_by_default(self, context):
        address = Address(make_address(1), context)
        assert address.get_data()['type'] == AddressType.ACCOUNT.value

    def test_zero_code_is_account(self, context):
        address = Address(make_address(1), context)
        address.set_code('0x0000')
        assert address.get_data()['type'] == AddressType.ACCOUNT.value

    def test_code_is_contract(self, context):
        address = Address(make_address(1), context)
        address.set_code('0xa')
        assert address.get_data()['type'] == AddressType.CONTRACT.value

    def test_suicide_is_permanent(self, context):
        address = Address(make_address(1), context)
        address.set_code('0x0102')
        assert address.is_contract()

        first = fake_internal_tx(1, address.address)
        assert address.suicide(first) is True
        data = address.get_data()
        assert data['type'] == AddressType.ACCOUNT.value
        assert data[DESTROYED_BY]['internalTxId'] == first['internalTxId']

        assert address.suicide(fake_internal_tx(2, address.address)) is False
        assert address.get_data()[DESTROYED_BY]['internalTxId'] == first['internalTxId']

        address.set_code('0xffaabbcc')
        assert address.get_data()['type'] == AddressType.ACCOUNT.value

    def test_invalid_address_fails_before_io(self, context, node):
        with pytest.raises(ValidationError):
            Address('0x1234', context)
        assert sum(node.calls.values()) == 0


class TestSetBlock:
    def test_last_block_mined_rules(self, context):
        miner = make_address(7)
        address = Address(miner, context)
        assert address.get_data()[LAST_BLOCK_MINED] is None

        assert address.set_block(mined_block(12, miner)) is True
        assert address.get_data()[LAST_BLOCK_MINED]['number'] == 12

        # Lower, equal and foreign blocks are ignored
        assert address.set_block(mined_block(2, miner)) is False
        assert address.set_block(mined_block(12, miner)) is False
        assert address.set_block(mined_block(200, make_address(8))) is False
        assert address.get_data()[LAST_BLOCK_MINED]['number'] == 12

        assert address.set_block(mined_block(200, miner)) is True
        assert address.get_data()[LAST_BLOCK_MINED]['number'] == 200

    @pytest.mark.asyncio
    async def test_fetch_reads_at_the_new_block(self, context, node):
        hash_ = make_address(7)
        node.balances[hash_] = {3: 1, 300: 7}
        address = Address(hash_, context, block=3)
        assert address.set_block(mined_block(300, hash_)) is True
        assert address.block_number == 300

        # A lower block does not move the observation back
        assert address.set_block(mined_block(200, make_address(8))) is False
        assert address.block_number == 300

        await address.fetch()
        data = address.get_data()
        assert data['balance'] == '7'
        assert data['lastBalanceBlock'] == 300

    @pytest.mark.asyncio
    async def test_new_block_drops_cached_decoder(self, context, node):
        hash_ = make_address(7)
        node.codes[hash_] = {3: CONTRACT_CODE}
        address = Address(hash_, context, block=3)
        assert await address.get_contract() is not None
        address.set_block(mined_block(300, make_address(8)))
        assert await address.get_contract() is None

    @pytest.mark.asyncio
    async def test_highest_mined_block_survives_storage(self, context, data_manager):
        miner = make_address(7)
        first = Address(miner, context, block=3)
        first.set_block(mined_block(10, miner))
        await first.save()

        second = Address(miner, context, block=3)
        await second.fetch()
        assert second.get_data()[LAST_BLOCK_MINED]['number'] == 10
        second.set_block(mined_block(14, miner))
        await second.save()

        # A scope that only saw a lower block does not move it back
        third = Address(miner, context, block=3)
        third.set_block(mined_block(12, miner))
        await third.save()
        stored = data_manager.find_one('addresses', miner)
        assert stored[LAST_BLOCK_MINED]['number'] == 14


class TestFetch:
    @pytest.mark.asyncio
    async def test_two_byte_code_then_suicide(self, context, node, data_manager):
        hash_ = make_address(3)
        node.codes[hash_] = '0x0102'
        address = Address(hash_, context, block=10)
        await address.fetch()
        assert address.get_data()['type'] == AddressType.CONTRACT.value

        address.suicide(fake_internal_tx(1, hash_))
        await address.save()

        later = Address(hash_, context, block=11)
        await later.fetch()
        data = later.get_data()
        assert data['type'] == AddressType.ACCOUNT.value
        assert data[DESTROYED_BY]['transactionHash'] == make_hash(1)
        await later.save()
        assert data_manager.find_one('addresses', hash_)['type'] == AddressType.ACCOUNT.value

    @pytest.mark.asyncio
    async def test_native_contract_without_code(self, context):
        address = Address(NATIVE_TEST_CONTRACT, context, block=10)
        await address.fetch()
        data = address.get_data()
        assert data['isNative'] is True
        assert data['name'] == 'nativeTestContract'
        assert data['type'] == AddressType.CONTRACT.value

    @pytest.mark.asyncio
    async def test_chain_native_contract(self, context):
        address = Address(BRIDGE, context)
        await address.fetch()
        assert address.get_data()['name'] == 'bridge'
        assert address.is_contract()

    @pytest.mark.asyncio
    async def test_unreachable_node_is_not_found(self, context, node):
        async def broken(*args, **kwargs):
            raise ConnectionError("node down")
        node.get_code = broken
        with pytest.raises(NotFoundError):
            await Address(make_address(4), context, block=1).fetch()


class TestBalanceRefresh:
    @pytest.fixture
    def stored_at_10(self, context, node):
        hash_ = make_address(5)
        node.balances[hash_] = 5

        async def save():
            address = Address(hash_, context, block=10)
            await address.fetch()
            await address.save()
            return hash_
        return save

    @pytest.mark.asyncio
    async def test_older_block_reuses_stored_balance(self, context, node, stored_at_10):
        hash_ = await stored_at_10()
        node.balances[hash_] = 99
        calls = node.calls['get_balance']

        address = Address(hash_, context, block=5)
        await address.fetch()
        assert node.calls['get_balance'] == calls
        assert address.get_data()['balance'] == '5'
        assert address.get_data()['lastBalanceBlock'] == 10

    @pytest.mark.asyncio
    async def test_same_block_refreshes(self, context, node, data_manager, stored_at_10):
        hash_ = await stored_at_10()
        node.balances[hash_] = 99
        calls = node.calls['get_balance']

        address = Address(hash_, context, block=10)
        await address.fetch()
        assert node.calls['get_balance'] == calls + 1
        assert address.get_data()['balance'] == '99'
        await address.save()
        assert data_manager.find_one('addresses', hash_)['balance'] == '99'

    @pytest.mark.asyncio
    async def test_newer_block_refreshes(self, context, node, data_manager, stored_at_10):
        hash_ = await stored_at_10()
        node.balances[hash_] = 10 ** 30

        address = Address(hash_, context, block=11)
        await address.fetch()
        await address.save()
        stored = data_manager.find_one('addresses', hash_)
        assert stored['balance'] == str(10 ** 30)
        assert stored['lastBalanceBlock'] == 11

    @pytest.mark.asyncio
    async def test_stale_save_keeps_newer_balance(self, context, node, data_manager, stored_at_10):
        hash_ = await stored_at_10()
        stale = Address(hash_, context, block=4)
        stale.data.balance = '1'
        stale.data.last_balance_block = 4
        await stale.save()
        assert data_manager.find_one('addresses', hash_)['balance'] == '5'


class TestSave:
    @pytest.mark.asyncio
    async def test_save_is_idempotent(self, context, node):
        hash_ = make_address(6)
        node.balances[hash_] = 3
        address = Address(hash_, context, block=1)
        await address.fetch()
        assert await address.save() is True
        assert await address.save() is False


class TestDeployment:
    @pytest.mark.asyncio
    async def test_deploying_transaction(self, context):
        hash_ = make_address(9)
        deployment = {'hash': make_hash(9), 'input': CONTRACT_CODE, 'receipt': {'contractAddress': hash_}}
        address = Address(hash_, context, block=1, deployment=deployment)
        await address.fetch()
        data = address.get_data()
        assert data['type'] == AddressType.CONTRACT.value
        assert data['createdByTx'] == make_hash(9)

    @pytest.mark.asyncio
    async def test_trace_create_entry(self, context):
        hash_ = make_address(9)
        deployment = {
            'type': 'create',
            'internalTxId': 'abc',
            'transactionHash': make_hash(9),
            'action': {'init': CONTRACT_CODE},
            'result': {'address': hash_},
        }
        address = Address(hash_, context, block=1, deployment=deployment)
        await address.fetch()
        data = address.get_data()
        assert data['type'] == AddressType.CONTRACT.value
        assert data['createdByInternalTx'] == 'abc'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('deployment,searches', [
        ({'hash': make_hash(9), 'input': CONTRACT_CODE, 'receipt': {'contractAddress': make_address(9)}}, 0),
        ({'type': 'create', 'internalTxId': 'abc', 'transactionHash': make_hash(9), 'result': {'address': make_address(9)}}, 0),
        (None, 1),
    ])
    async def test_storage_searched_only_without_deployment(self, context, node, monkeypatch, deployment, searches):
        node.codes[make_address(9)] = CONTRACT_CODE
        calls = []
        search = Address.search_deployment_data

        async def counted(self):
            calls.append(self.address)
            return await search(self)
        monkeypatch.setattr(Address, 'search_deployment_data', counted)

        address = Address(make_address(9), context, block=1, deployment=deployment)
        await address.fetch()
        assert len(calls) == searches
        assert address.get_data()['type'] == AddressType.CONTRACT.value

    @pytest.mark.asyncio
    async def test_deployment_for_another_address_is_ignored(self, context):
        deployment = {'hash': make_hash(9), 'input': '0x', 'receipt': {'contractAddress': make_address(10)}}
        address = Address(make_address(9), context, block=1, deployment=deployment)
        await address.fetch()
        assert address.get_data()['type'] == AddressType.ACCOUNT.value

    @pytest.mark.asyncio
    async def test_stored_deploying_transaction(self, context, node, data_manager):
        hash_ = make_address(11)
        node.codes[hash_] = CONTRACT_CODE
        data_manager.upsert('txs', make_hash(11), {'hash': make_hash(11), 'receipt': {'contractAddress': hash_}})
        address = Address(hash_, context, block=1)
        await address.fetch()
        assert address.get_data()['createdByTx'] == make_hash(11)


class TestContract:
    @pytest.mark.asyncio
    async def test_decoder_is_cached(self, context, node):
        hash_ = make_address(12)
        node.codes[hash_] = CONTRACT_CODE
        address = Address(hash_, context, block=1)
        contract = await address.get_contract()
        assert contract is not None
        assert await address.get_parser() is contract
        assert node.calls['get_code'] == 1

    @pytest.mark.asyncio
    async def test_no_code_no_decoder(self, context):
        assert await Address(make_address(13), context, block=1).get_contract() is None
