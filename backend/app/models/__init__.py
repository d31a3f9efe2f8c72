from .user import User, TrainerCustomerRelationship
from .protocol import TrainerHealthProtocol, ProtocolAssignment
from .template import ProtocolTemplate
