"""
Initializer parameter bundle for the upgradeable JiblyCoin token.

Percentages are basis points, durations are seconds and token amounts are
whole tokens converted to 18-decimal base units when encoded.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field
from web3 import Web3


def to_base_units(amount: int) -> int:
    """Convert whole tokens to 18-decimal base units."""
    return Web3.to_wei(amount, "ether")


class FeeParams(BaseModel):
    """Fee parameters."""

    baseFeePercentage: int = Field(default=100, ge=0, le=10000)
    redistributionFeePercentage: int = Field(default=200, ge=0, le=10000)
    burnFeePercentage: int = Field(default=100, ge=0, le=10000)
    buybackFeePercentage: int = Field(default=100, ge=0, le=10000)
    jiblyHoodFeePercentage: int = Field(default=50, ge=0, le=10000)


class TxnParams(BaseModel):
    """Per-transaction limits."""

    maxTransactionSize: int = Field(default=1000, ge=0, description="Whole tokens")
    maxGasLimit: int = Field(default=300000, ge=0)
    transactionCooldown: int = Field(default=60, ge=0)

    def to_abi(self) -> Dict[str, Any]:
        return {
            "maxTransactionSize": to_base_units(self.maxTransactionSize),
            "maxGasLimit": self.maxGasLimit,
            "transactionCooldown": self.transactionCooldown,
        }


class GovParams(BaseModel):
    """Governance parameters."""

    quorumPercentage: int = Field(default=2500, ge=0, le=10000)
    minHoldingDuration: int = Field(default=604800, ge=0)
    votingRewardPercentage: int = Field(default=500, ge=0, le=10000)


class ReferralParams(BaseModel):
    """Referral rewards for three levels."""

    referralRewards: List[int] = Field(default_factory=lambda: [500, 300, 200])
    referralRewardCap: int = Field(default=1000, ge=0, description="Whole tokens")

    def to_abi(self) -> Dict[str, Any]:
        return {
            "referralRewards": list(self.referralRewards),
            "referralRewardCap": to_base_units(self.referralRewardCap),
        }


class RewardCaps(BaseModel):
    """Loyalty reward caps, in whole tokens."""

    userRewardCap: int = Field(default=10000, ge=0)
    totalRewardCap: int = Field(default=1000000, ge=0)
    monthlyRewardCap: int = Field(default=83333, ge=0)

    def to_abi(self) -> Dict[str, Any]:
        return {
            "userRewardCap": to_base_units(self.userRewardCap),
            "totalRewardCap": to_base_units(self.totalRewardCap),
            "monthlyRewardCap": to_base_units(self.monthlyRewardCap),
        }


class TokenInitParams(BaseModel):
    """Full argument list for JiblyCoin.initialize."""

    name: str = Field(default="JiblyCoin")
    symbol: str = Field(default="JIBLY")
    fee_params: FeeParams = Field(default_factory=FeeParams)
    txn_params: TxnParams = Field(default_factory=TxnParams)
    gov_params: GovParams = Field(default_factory=GovParams)
    referral_params: ReferralParams = Field(default_factory=ReferralParams)
    reward_caps: RewardCaps = Field(default_factory=RewardCaps)
    upgrade_delay: int = Field(default=86400, ge=0)
    locker: str = Field(..., description="Admin wallet that holds locked supply")

    def to_initializer_args(self) -> List[Any]:
        """
        Build the positional initializer arguments.

        Quorum, holding duration and voting reward are passed a second time as
        scalars, and the user cap and redistribution pool come from the reward
        caps, matching the contract's initializer signature.
        """
        return [
            self.name,
            self.symbol,
            self.fee_params.model_dump(),
            self.txn_params.to_abi(),
            self.gov_params.model_dump(),
            self.referral_params.to_abi(),
            self.reward_caps.to_abi(),
            self.gov_params.quorumPercentage,
            self.gov_params.minHoldingDuration,
            self.gov_params.votingRewardPercentage,
            to_base_units(self.reward_caps.userRewardCap),
            to_base_units(self.reward_caps.totalRewardCap),
            self.upgrade_delay,
            Web3.to_checksum_address(self.locker),
        ]
