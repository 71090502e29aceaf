"""이벤트 유형 상수"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # nft
    NFT_MINTED = "nft_minted"
    NFT_BURNED = "nft_burned"
    NFT_TRANSFERRED = "nft_transferred"
    NFT_LOCKED = "nft_locked"
    NFT_UNLOCKED = "nft_unlocked"
