"""Well-known Solana program and mint addresses used by the detector."""

# Account every pump.fun migration transaction touches (the migration authority)
MIGRATION_ACCOUNT = "39azUYFWPz3VHgKCf3VChUwbpURdCHRxjWVowf5jUJjg"

# pump.fun bonding-curve program
PUMPFUN_PROGRAM = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

# Destination venues
PUMPSWAP_MIGRATION_PROGRAM = "PSwapMdSai8tjrEXcxFeQth87xC4rRsa4VA5mhGhXkP"
PUMPSWAP_AMM_PROGRAM = "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA"
RAYDIUM_AMM_PROGRAM = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
RAYDIUM_CLMM_PROGRAM = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"

# Order matters: the first venue whose programs appear in a transaction wins.
DESTINATION_PROGRAMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("pumpswap", (PUMPSWAP_MIGRATION_PROGRAM, PUMPSWAP_AMM_PROGRAM)),
    ("raydium", (RAYDIUM_AMM_PROGRAM, RAYDIUM_CLMM_PROGRAM)),
)

# Metaplex Token Metadata program
TOKEN_METADATA_PROGRAM = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"

# Quote mints that appear in every migration and never identify the token
WSOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
