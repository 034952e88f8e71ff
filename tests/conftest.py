"""
Shared bytecode fixtures.

Compiled contracts used across the suite. Each is defined once here and
exposed both as hex text and as bytes.
"""

import pytest

# empty.sol (solc 0.8.30): 26 bytes of init code, 21 bytes of runtime code
# ending in a solc-only metadata blob
EMPTY_CONTRACT_HEX = (
    "6080604052348015600e575f5ffd5b50601580601a5f395ff3fe60806040525f5ffdfea164736f6c"
    "634300081e000a"
)

# counter.sol (solc 0.8.30): setNumber(uint256), number(), increment()
# 28 bytes of init code, 440 bytes of runtime code
COUNTER_CONTRACT_HEX = (
    "6080604052348015600e575f5ffd5b506101b88061001c5f395ff3fe608060405234801561000f57"
    "5f5ffd5b506004361061003f575f3560e01c80633fb5c1cb146100435780638381f58a1461005f57"
    "8063d09de08a1461007d575b5f5ffd5b61005d600480360381019061005891906100e4565b610087"
    "565b005b610067610090565b604051610074919061011e565b60405180910390f35b610085610095"
    "565b005b805f8190555050565b5f5481565b5f5f8154809291906100a690610164565b9190505550"
    "565b5f5ffd5b5f819050919050565b6100c3816100b1565b81146100cd575f5ffd5b50565b5f8135"
    "90506100de816100ba565b92915050565b5f602082840312156100f9576100f86100ad565b5b5f61"
    "0106848285016100d0565b91505092915050565b610118816100b1565b82525050565b5f60208201"
    "90506101315f83018461010f565b92915050565b7f4e487b71000000000000000000000000000000"
    "000000000000000000000000005f52601160045260245ffd5b5f61016e826100b1565b91507fffff"
    "ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff82036101a05761019f61"
    "0137565b5b60018201905091905056fea164736f6c634300081e000a"
)

# Ownable-style runtime code: getOwner(), changeOwner(address); 560 bytes
# of code followed by a 53-byte ipfs + solc CBOR metadata trailer
OWNER_RUNTIME_HEX = (
    "608060405234801561001057600080fd5b50600436106100365760003560e01c8063893d20e81461"
    "003b578063a6f9dae114610059575b600080fd5b610043610075565b604051610050919061016656"
    "5b60405180910390f35b610073600480360381019061006e91906101b2565b61009e565b005b6000"
    "8060009054906101000a900473ffffffffffffffffffffffffffffffffffffffff16905090565b80"
    "73ffffffffffffffffffffffffffffffffffffffff163373ffffffffffffffffffffffffffffffff"
    "ffffffff16036100d357806000806101000a81548173ffffffffffffffffffffffffffffffffffff"
    "ffff021916908373ffffffffffffffffffffffffffffffffffffffff1602179055505b50565b6000"
    "73ffffffffffffffffffffffffffffffffffffffff82169050919050565b6000610101826100d656"
    "5b9050919050565b610111816100f6565b82525050565b600060208201905061012c600083018461"
    "0108565b92915050565b600080fd5b610140816100f6565b811461014b57600080fd5b50565b6000"
    "8135905061015d81610137565b92915050565b60006020828403121561017957610178610132565b"
    "5b60006101878482850161014e565b91505092915050565b7f4e487b710000000000000000000000"
    "0000000000000000000000000000000000600052602260045260246000fd5b600060028204905060"
    "018216806101d857607f821691505b6020821081036101eb576101ea610190565b5b5091905056fe"
    "a26469706673582212209d84a3c5d1d6c4c5f9c5e5c5e5c5e5c5e5c5e5c5e5c5e5c5e5c5e5c5e5c5"
    "e5c564736f6c634300080a0033"
)


@pytest.fixture
def empty_contract():
    return bytes.fromhex(EMPTY_CONTRACT_HEX)


@pytest.fixture
def counter():
    return bytes.fromhex(COUNTER_CONTRACT_HEX)


@pytest.fixture
def owner():
    return bytes.fromhex(OWNER_RUNTIME_HEX)


@pytest.fixture
def hex_file(tmp_path):
    """Write hex text to a file under ``tmp_path`` and return its path."""
    def _write(content, name="contract.hex"):
        path = tmp_path / name
        path.write_text(content)
        return str(path)
    return _write


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run with no SCENT_* variables set and ``tmp_path`` as working directory."""
    for name in ("SCENT_SELECTORS", "SCENT_USE_REMOTE", "SCENT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
