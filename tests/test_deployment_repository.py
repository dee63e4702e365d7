import json

from conftest import DEPLOYER
from jiblycoin_deploy.domain.models.deployment import (
    DeployedContract,
    DiamondDeploymentResult,
    FacetCut,
    ProxyDeploymentResult,
    ProxyKind,
    RegistrationMode,
)
from jiblycoin_deploy.domain.repositories.deployment_repository import DeploymentRepository


def _contract(name, digit):
    return DeployedContract(name=name, address="0x" + digit * 40, tx_hash="0x" + digit * 64, block_number=1)


def _diamond_result():
    facet = _contract("JiblycoinCoreFacet", "3")
    return DiamondDeploymentResult(
        network="bscTestnet",
        chain_id=97,
        deployer=DEPLOYER,
        nft=_contract("JiblycoinNFT", "1"),
        diamond=_contract("JiblycoinDiamond", "2"),
        facets={facet.name: facet},
        cuts=[FacetCut(facet_name=facet.name, facet_address=facet.address, selectors=["0xa9059cbb"])],
        registration_mode=RegistrationMode.BATCHED,
        registered_selectors=["0xa9059cbb"],
        nft_consumer_wired=False,
    )


def _proxy_result():
    return ProxyDeploymentResult(
        network="bscTestnet",
        chain_id=97,
        deployer=DEPLOYER,
        kind=ProxyKind.UUPS,
        implementation=_contract("JiblyCoin", "4"),
        proxy=_contract("ERC1967Proxy", "5"),
        initializer="initialize",
    )


def test_load_missing_network_is_empty(tmp_path):
    assert DeploymentRepository(str(tmp_path)).load("hardhat") == {}


def test_save_writes_one_file_per_network(tmp_path):
    repository = DeploymentRepository(str(tmp_path / "deployments"))

    path = repository.save(_diamond_result())

    assert path == tmp_path / "deployments" / "bscTestnet.json"
    record = json.loads(path.read_text())
    assert record["network"] == "bscTestnet"
    assert record["diamond"]["facets"]["JiblycoinCoreFacet"]["selectors"] == ["0xa9059cbb"]
    assert record["diamond"]["registrationMode"] == "batched"
    assert list(record["contracts"]) == ["JiblycoinNFT", "JiblycoinDiamond", "JiblycoinCoreFacet"]


def test_proxy_and_diamond_runs_share_the_network_record(tmp_path):
    """A proxy run on the same network keeps the diamond entries."""
    repository = DeploymentRepository(str(tmp_path))

    repository.save(_diamond_result())
    repository.save(_proxy_result())

    record = repository.load("bscTestnet")
    assert "diamond" in record
    assert record["proxy"]["kind"] == "uups"
    assert set(record["contracts"]) == {
        "JiblycoinNFT",
        "JiblycoinDiamond",
        "JiblycoinCoreFacet",
        "JiblyCoin",
        "ERC1967Proxy",
    }
