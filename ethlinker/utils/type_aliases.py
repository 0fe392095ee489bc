from typing import NewType

T_ChainID = int
ChainID = NewType("ChainID", T_ChainID)

T_Nonce = int
Nonce = NewType("Nonce", T_Nonce)

T_PrivateKey = bytes
PrivateKey = NewType("PrivateKey", T_PrivateKey)

T_Signature = bytes
Signature = NewType("Signature", T_Signature)

T_Wei = int
Wei = NewType("Wei", T_Wei)
