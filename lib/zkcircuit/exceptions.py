class GateIndexOutOfRangeException(IndexError):
    pass

class LeafIndexOutOfRangeException(IndexError):
    pass

class EmptyMerkleTreeException(ValueError):
    pass

class EmptyProofException(ValueError):
    pass

class InvalidProofException(ValueError):
    pass

class R1CSSerializationException(ValueError):
    pass
