# -*- coding: utf-8 -*-
"""
Configuration constants for the Multi-Chain Balance Aggregator
Endpoints, unit divisors and static price tables used by the adapters
"""

# EVM JSON-RPC endpoints (public, no API key required)
EVM_RPC_ENDPOINTS = {
    "ethereum": "https://eth.llamarpc.com",
    "polygon": "https://polygon.llamarpc.com",
    "bsc": "https://bsc.llamarpc.com",
    "avalanche": "https://avalanche.llamarpc.com",
    "arbitrum": "https://arbitrum.llamarpc.com",
    "optimism": "https://optimism.llamarpc.com",
}

# Block explorer REST APIs (etherscan-compatible)
EVM_EXPLORER_APIS = {
    "ethereum": "https://api.etherscan.io/api",
    "polygon": "https://api.polygonscan.com/api",
    "bsc": "https://api.bscscan.com/api",
    "avalanche": "https://api.snowtrace.io/api",
    "arbitrum": "https://api.arbiscan.io/api",
    "optimism": "https://api-optimistic.etherscan.io/api",
}

# Native asset per chain
NATIVE_TOKENS = {
    "ethereum": {"symbol": "ETH", "decimals": 18},
    "polygon": {"symbol": "MATIC", "decimals": 18},
    "bsc": {"symbol": "BNB", "decimals": 18},
    "avalanche": {"symbol": "AVAX", "decimals": 18},
    "arbitrum": {"symbol": "ETH", "decimals": 18},
    "optimism": {"symbol": "ETH", "decimals": 18},
    "solana": {"symbol": "SOL", "decimals": 9},
    "tron": {"symbol": "TRX", "decimals": 6},
    "bitcoin": {"symbol": "BTC", "decimals": 8},
}

ERC20_BALANCE_OF_SELECTOR = "0x70a08231"

# Solana API Constants
SOLANA_RPC_URL = "https://api.mainnet-beta.solana.com"
SOLANA_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
SOLANA_TOKENS = {
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
}

# Tron API Constants
TRONSCAN_API_URL = "https://apilist.tronscan.org/api"
TRON_TOKEN_PAGE_LIMIT = 50

# Bitcoin explorer mirrors, tried in rotation
BITCOIN_API_ENDPOINTS = {
    "blockstream": "https://blockstream.info/api/address/{address}",
    "mempool": "https://mempool.space/api/address/{address}",
    "blockcypher": "https://api.blockcypher.com/v1/btc/main/addrs/{address}/balance",
}

# Well-known contracts injected into EVM token discovery
KNOWN_EVM_TOKENS = {
    "ethereum": [
        {"contract": "0xdAC17F958D2ee523a2206206994597C13D831ec7", "symbol": "USDT", "name": "Tether USD", "decimals": 6},
        {"contract": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "symbol": "USDC", "name": "USD Coin", "decimals": 6},
        {"contract": "0x6B175474E89094C44Da98b954EedeAC495271d0F", "symbol": "DAI", "name": "Dai Stablecoin", "decimals": 18},
        {"contract": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", "symbol": "WETH", "name": "Wrapped Ether", "decimals": 18},
        {"contract": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", "symbol": "WBTC", "name": "Wrapped BTC", "decimals": 8},
    ],
    "polygon": [
        {"contract": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", "symbol": "USDT", "name": "Tether USD", "decimals": 6},
        {"contract": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", "symbol": "USDC", "name": "USD Coin", "decimals": 6},
    ],
    "bsc": [
        {"contract": "0x55d398326f99059fF775485246999027B3197955", "symbol": "USDT", "name": "Tether USD", "decimals": 18},
    ],
}

# Live price source
COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
COINGECKO_PRICE_URL = f"{COINGECKO_BASE_URL}/simple/price"

COINGECKO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
    "USDC": "usd-coin",
    "SOL": "solana",
    "BNB": "binancecoin",
    "DOGE": "dogecoin",
    "ADA": "cardano",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
    "DOT": "polkadot",
    "XRP": "ripple",
    "LTC": "litecoin",
    "TRX": "tron",
    "WETH": "weth",
    "WBTC": "wrapped-bitcoin",
}

# Fallback prices (updated manually)
FALLBACK_PRICES = {
    "BTC": 43250,
    "ETH": 2280,
    "USDT": 1.0,
    "USDC": 1.0,
    "SOL": 98.5,
    "BNB": 312,
    "DOGE": 0.082,
    "ADA": 0.45,
    "MATIC": 0.88,
    "AVAX": 35.2,
    "DOT": 6.8,
    "XRP": 0.52,
    "LTC": 72.5,
    "TRX": 0.1,
    "WETH": 2280,
    "WBTC": 43250,
}

# Token prices used when the live source has no quote for a discovered token
KNOWN_TOKEN_PRICES = {
    "USDT": 1.0,
    "USDC": 1.0,
    "DAI": 1.0,
    "WETH": 2280,
    "WBTC": 43250,
}

# File and Directory Constants
WALLET_STORAGE_FILE = "data/wallets.json"

NO_WALLETS_MESSAGE = "No wallets imported yet"
