import pytest

from stacksim.blockchain.core.chain import Simnet
from stacksim.blockchain.core.events import EventBus
from stacksim.protocol.config.params import NETWORKS

from nft_guestbook import NftGuestbook


@pytest.fixture
def simnet():
    """A fresh simnet with its own event bus and no contracts."""
    chain = Simnet(config=NETWORKS["simnet"], events=EventBus())
    yield chain
    chain.events.clear()


@pytest.fixture
def chain(simnet):
    """A fresh simnet with the guestbook contract deployed by 'deployer'."""
    simnet.deploy_contract("nft-guestbook", NftGuestbook())
    return simnet


@pytest.fixture
def accounts(chain):
    """name -> address of the genesis accounts."""
    return {name: acc.address for name, acc in chain.accounts.items()}
