from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

JewelryType = Literal["ring", "necklace", "bracelet", "earrings", "pendant", "brooch"]
Material = Literal["gold", "platinum", "silver", "white-gold", "rose-gold"]
GemstoneType = Literal["diamond", "ruby", "emerald", "sapphire", "pearl"]
Complexity = Literal["simple", "moderate", "complex", "intricate"]
Size = Literal["small", "medium", "large"]
Severity = Literal["critical", "warning", "minor"]


# ============ Pricing Models ============
class JewelrySpecs(BaseModel):
    type: JewelryType = "ring"
    material: Material = "gold"
    karat: Optional[int] = None
    hasGemstones: bool = False
    gemstoneCarat: Optional[float] = None
    gemstoneType: Optional[GemstoneType] = None
    complexity: Complexity = "moderate"
    size: Size = "medium"
    pearlCount: Optional[int] = None


class SpotPrices(BaseModel):
    gold: float
    silver: float
    platinum: float
    lastUpdated: datetime
    source: Literal["mock", "live", "fallback"] = "mock"


class PricingDetail(BaseModel):
    materialWeight: float
    materialPricePerGram: float
    laborHours: float
    laborRate: float
    markup: float


class PricingBreakdown(BaseModel):
    materialCost: int
    laborCost: int
    gemstoneCost: int
    subtotal: int
    margin: int
    finalPrice: int
    breakdown: PricingDetail


# ============ Validation Models ============
class ProductionValidation(BaseModel):
    isValid: bool
    issues: List[str] = []
    warnings: List[str] = []


class DesignElements(BaseModel):
    customText: List[str] = []
    names: List[str] = []
    engravings: List[str] = []
    numbers: List[str] = []
    specialInstructions: List[str] = []


class ExtractedElements(BaseModel):
    customText: List[str] = []
    numbers: List[str] = []
    specialRequests: List[str] = []


class ValidationResult(BaseModel):
    isValid: bool
    errors: List[str] = []
    warnings: List[str] = []
    extractedElements: ExtractedElements = Field(default_factory=ExtractedElements)


class ConsistencyCheck(BaseModel):
    element: str
    view1: Union[str, int]
    view2: Union[str, int]
    matches: bool
    severity: Severity


class ConsistencyValidation(BaseModel):
    isConsistent: bool
    consistencyScore: int
    checks: List[ConsistencyCheck] = []
    criticalIssues: List[str] = []
    warnings: List[str] = []
    summary: str = ""


# ============ Design Fingerprint Models ============
class MetalSpec(BaseModel):
    type: str
    composition: str
    karat: Optional[int] = None
    finish: str
    reflectivity: int
    weight: str
    thickness: str


class GemstoneSpec(BaseModel):
    type: str
    count: int
    role: Literal["primary", "accent", "halo"]
    cut: str
    size: str
    clarity: Optional[str] = None
    color: Optional[str] = None
    setting: str
    placement: str
    prongCount: Optional[int] = None


class DimensionSpec(BaseModel):
    length: str
    width: str
    height: str
    weight: str
    ringSize: Optional[str] = None


class DesignFingerprint(BaseModel):
    id: str
    metal: MetalSpec
    gemstones: List[GemstoneSpec] = []
    dimensions: DimensionSpec
    distinctiveFeatures: List[str] = []
    jewelryType: str
    styleNotes: List[str] = []


class ViewSpec(BaseModel):
    type: Literal["HERO", "TECHNICAL", "DETAIL", "LIFESTYLE"]
    viewNumber: int
    cameraAngle: str
    lighting: str
    background: str
    purpose: str
    aesthetic: str


# ============ Design API Models ============
class GenerateDesignRequest(BaseModel):
    user_vision: str
    views: int = Field(default=2, ge=2, le=4)
    persist: bool = False
    design_id: Optional[str] = None


class GeneratedImage(BaseModel):
    type: str
    view: int
    url: Optional[str] = None
    storage_url: Optional[str] = None
    prompt: Optional[str] = None
    revised_prompt: Optional[str] = None
    error: Optional[str] = None


class GenerateDesignResponse(BaseModel):
    success: bool
    design_id: str
    images: List[GeneratedImage]
    specifications: str
    user_vision: str
    fingerprint: DesignFingerprint
    pricing: PricingBreakdown
    specs: JewelrySpecs
    complexity: int
    production_days: int
    production: ProductionValidation
    consistency: ConsistencyValidation
    text_validation: List[ValidationResult] = []
    generated_at: datetime
    warnings: List[str] = []


class EstimateRequest(BaseModel):
    prompt: str


class EstimateResponse(BaseModel):
    success: bool
    specs: JewelrySpecs
    pricing: PricingBreakdown
    complexity: int
    production_days: int
    spot_prices: SpotPrices


class ValidateDesignRequest(BaseModel):
    prompt: str


class ValidateDesignResponse(BaseModel):
    success: bool
    production: ProductionValidation
    sanitized_prompt: str
    elements: DesignElements
    suggestions: List[str] = []


# ============ Saved / Shared Design Models ============
class SaveDesignRequest(BaseModel):
    title: Optional[str] = None
    prompt: Optional[str] = None
    images: Optional[List[Dict[str, Any]]] = None
    specifications: Optional[str] = None
    pricing_breakdown: Optional[Dict[str, Any]] = None
    jewelry_type: Optional[str] = None
    style_tags: List[str] = []
    materials: Optional[Union[Dict[str, Any], List[Any]]] = None
    makePublic: bool = False


class SharedDesignRequest(BaseModel):
    title: str
    prompt: str
    tags: List[str] = []
    jewelry_type: str = "custom"
    style_tags: List[str] = []
    materials: List[Any] = []
    estimated_price: float = 0
    pricing_breakdown: Optional[Dict[str, Any]] = None
    images: List[Dict[str, Any]] = []


# ============ GDPR Models ============
class ConsentRequest(BaseModel):
    userId: Optional[str] = None
    consentType: Optional[str] = None
    consentGiven: Optional[bool] = None
    consentVersion: Optional[str] = None
    consentText: Optional[str] = None


class ConsentUpdateRequest(BaseModel):
    consentType: str
    consentGiven: bool


class DeleteAccountRequest(BaseModel):
    immediate: bool = False
    reason: Optional[str] = None


# ============ Order / Share Models ============
class OrderPricing(BaseModel):
    subtotal: float
    discount: float = 0
    total: float


class CreateOrderRequest(BaseModel):
    designId: Optional[str] = None
    customPrompt: Optional[str] = None
    pricingBreakdown: OrderPricing
    images: List[Dict[str, Any]] = []
    shippingInfo: Optional[Dict[str, Any]] = None
    paymentMethod: Optional[str] = None
    stripePaymentIntentId: Optional[str] = None


class ShareImagesRequest(BaseModel):
    designId: Optional[str] = None
    imagePaths: Optional[List[str]] = None
