"""
Shipment Bid (shipbid)

Client for a multi-organization sealed-bid shipment auction running as
chaincode on a permissioned ledger:
- Commit-reveal bidding with transient (private) payloads
- Endorsing organizations selected from live auction state
- Create / bid / reveal / close / end lifecycle commands
"""
