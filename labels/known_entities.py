MEXC = "MEXC"
KUCOIN = "Kucoin"
UNISWAP = "Uniswap"

EXCHANGE_CATEGORIES = (MEXC, KUCOIN, UNISWAP)

# address -> destination category for sales attribution
EXCHANGE_ADDRESSES = {
    "0x9642b23ed1e01df1092b92641051881a322f5d4e": MEXC,
    "0x3b9f91d968a5fb014eff74cdb6e6334ae7dbcc16": KUCOIN,
    "0x7e20e121ded9ed7c67b4971eed536e8f82873df3": KUCOIN,
    "0x58edf78281334335effa23101bbe3371b6a36a51": KUCOIN,
    "0x2d0cd4e0065fe645c983c00db29a9a3d66eb2073": UNISWAP,
}
