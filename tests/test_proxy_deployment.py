import json

import pytest
from web3 import Web3

from conftest import DEPLOYER, make_settings
from jiblycoin_deploy.core.exceptions import ContractDeploymentError
from jiblycoin_deploy.domain.models.deployment import ProxyKind
from jiblycoin_deploy.domain.models.token import TokenInitParams, to_base_units
from jiblycoin_deploy.domain.repositories.deployment_repository import DeploymentRepository
from jiblycoin_deploy.services.proxy_deployment_service import ProxyDeploymentService

pytestmark = pytest.mark.anyio("asyncio")

INITIALIZE_SELECTOR = bytes(Web3.keccak(text="initialize(string,string)")[:4])
LOCKER = "0x1E885Cf6B4bdb0161632493328066a79d04527cb"


@pytest.mark.anyio
async def test_uups_proxy_is_initialized_in_constructor(chain, deploy_settings):
    result = await ProxyDeploymentService(chain, deploy_settings).deploy()

    implementation_name, implementation_args = chain.deployments[0]
    proxy_name, proxy_args = chain.deployments[1]

    assert implementation_name == "JiblyCoin"
    assert implementation_args == ()
    assert proxy_name == "ERC1967Proxy"
    assert proxy_args[0] == result.implementation.address
    assert proxy_args[1].startswith(INITIALIZE_SELECTOR)
    assert result.kind == ProxyKind.UUPS


@pytest.mark.anyio
async def test_proxy_address_is_a_valid_contract(chain, deploy_settings):
    result = await ProxyDeploymentService(chain, deploy_settings).deploy()

    assert Web3.is_checksum_address(result.proxy.address)
    assert await chain.is_contract(result.proxy.address)
    assert result.proxy.address != result.implementation.address
    # token calls go to the proxy using the implementation interface
    assert result.proxy.abi == result.implementation.abi


@pytest.mark.anyio
async def test_transparent_proxy_takes_admin(chain):
    config = make_settings(PROXY_KIND="transparent")

    result = await ProxyDeploymentService(chain, config).deploy()

    proxy_name, proxy_args = chain.deployments[1]
    assert proxy_name == "TransparentUpgradeableProxy"
    assert proxy_args[:2] == (result.implementation.address, DEPLOYER)
    assert proxy_args[2].startswith(INITIALIZE_SELECTOR)


@pytest.mark.anyio
async def test_proxy_without_code_is_rejected(chain, deploy_settings):
    async def no_code(address):
        return False

    chain.is_contract = no_code

    with pytest.raises(ContractDeploymentError) as exc_info:
        await ProxyDeploymentService(chain, deploy_settings).deploy()

    assert exc_info.value.details["error"] == "no code at proxy address"


@pytest.mark.anyio
async def test_proxy_result_is_recorded_next_to_diamond(chain, deploy_settings, tmp_path):
    repository = DeploymentRepository(str(tmp_path))

    result = await ProxyDeploymentService(chain, deploy_settings, repository).deploy()

    record = json.loads((tmp_path / "hardhat.json").read_text())
    assert record["proxy"] == {
        "address": result.proxy.address,
        "implementation": result.implementation.address,
        "kind": "uups",
    }


def test_default_initializer_arguments():
    args = TokenInitParams(locker=LOCKER.lower()).to_initializer_args()

    assert len(args) == 14
    assert args[:2] == ["JiblyCoin", "JIBLY"]
    assert args[2] == {
        "baseFeePercentage": 100,
        "redistributionFeePercentage": 200,
        "burnFeePercentage": 100,
        "buybackFeePercentage": 100,
        "jiblyHoodFeePercentage": 50,
    }
    assert args[3] == {
        "maxTransactionSize": 1000 * 10**18,
        "maxGasLimit": 300000,
        "transactionCooldown": 60,
    }
    assert args[4] == {
        "quorumPercentage": 2500,
        "minHoldingDuration": 604800,
        "votingRewardPercentage": 500,
    }
    assert args[5] == {"referralRewards": [500, 300, 200], "referralRewardCap": 1000 * 10**18}
    assert args[6]["monthlyRewardCap"] == 83333 * 10**18
    assert args[7:10] == [2500, 604800, 500]
    assert args[10:12] == [10000 * 10**18, 1000000 * 10**18]
    assert args[12] == 86400
    assert args[13] == Web3.to_checksum_address(LOCKER)


def test_to_base_units_uses_18_decimals():
    assert to_base_units(1) == 10**18
    assert to_base_units(0) == 0


def test_fee_percentages_are_bounded():
    with pytest.raises(ValueError):
        TokenInitParams(locker=LOCKER, fee_params={"baseFeePercentage": 10001})
